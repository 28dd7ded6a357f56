import os
import asyncio
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import psutil

from ..config import IS_WIN

NETWORK_FILESYSTEMS = frozenset({
    "nfs", "nfs4", "cifs", "smbfs", "smb2", "smb3", "afpfs", "9p",
    "fuse.sshfs", "sshfs", "davfs", "webdav", "ncpfs", "fuse.rclone",
})


class DriveClass(str, Enum):
    LOCAL = "local"
    REMOVABLE = "removable"
    NETWORK = "network"
    UNKNOWN = "unknown"

    @property
    def supports_trash(self) -> bool:
        return self != DriveClass.NETWORK


def classify_partition(fstype: str, opts: str) -> DriveClass:
    flags = {o.strip().lower() for o in (opts or "").split(",")}
    if "remote" in flags or (fstype or "").lower() in NETWORK_FILESYSTEMS:
        return DriveClass.NETWORK
    if "removable" in flags or "cdrom" in flags:
        return DriveClass.REMOVABLE
    return DriveClass.LOCAL


def load_volumes() -> List[Tuple[str, DriveClass]]:
    """
    Blocking read of the OS partition table as (mount point, drive class).
    This is the expensive call; a session makes it at most once.
    """
    volumes = []
    for part in psutil.disk_partitions(all=True):
        volumes.append((part.mountpoint, classify_partition(part.fstype, part.opts)))
    return volumes


def _is_under(path: str, mount: str) -> bool:
    if path == mount:
        return True
    prefix = mount if mount.endswith(os.sep) else mount + os.sep
    return path.startswith(prefix)


class DriveClassifier:
    """
    Per-session drive class lookup.

    One instance lives for one scan or cleanup session. Removable and network
    status can change between sessions, so nothing here is persisted.
    """

    def __init__(self, volume_loader: Optional[Callable[[], List[Tuple[str, DriveClass]]]] = None):
        self._loader = volume_loader or load_volumes
        self._volumes: Optional[List[Tuple[str, DriveClass]]] = None
        self._by_root: Dict[str, DriveClass] = {}
        self._lock = asyncio.Lock()

    async def _ensure_volumes(self) -> List[Tuple[str, DriveClass]]:
        async with self._lock:
            if self._volumes is None:
                try:
                    raw = await asyncio.to_thread(self._loader)
                except (OSError, RuntimeError) as e:
                    print(f"⚠️ Could not read partition table: {e}")
                    raw = []
                # Longest mount point first so nested mounts win
                self._volumes = sorted(
                    ((os.path.normcase(m), c) for m, c in raw),
                    key=lambda v: len(v[0]),
                    reverse=True,
                )
            return self._volumes

    def volume_root(self, path: str) -> Optional[str]:
        """Mount point holding path, once the partition table is loaded."""
        cmp_path = os.path.normcase(os.path.abspath(path))
        for mount, _ in self._volumes or []:
            if _is_under(cmp_path, mount):
                return mount
        return None

    async def classify(self, path: str) -> DriveClass:
        abs_path = os.path.abspath(path)
        if IS_WIN and abs_path.startswith("\\\\"):
            # UNC share: \\server\share\...
            return DriveClass.NETWORK

        await self._ensure_volumes()
        root = self.volume_root(abs_path)
        if root is None:
            return DriveClass.UNKNOWN

        if root not in self._by_root:
            self._by_root[root] = dict(self._volumes)[root]
        return self._by_root[root]
