# Library cache and its JSON persistence

from .json_store import JSONStore
from .metadata_cache import MetadataCache
