# Discovery: filesystem access, classification, metadata and the scan loop
