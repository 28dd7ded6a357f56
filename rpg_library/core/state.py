import os
from typing import Optional, Set


def normalize_path(path: str) -> str:
    """Cache and busy-set key for a folder."""
    return os.path.normcase(os.path.abspath(path))


class BusyRegistry:
    """
    Folders currently being classified or cleaned.

    Check-and-insert is atomic on the single event loop. A rescan and a
    cleanup interleave at await points and must never touch the same folder.
    """

    def __init__(self):
        self._busy: Set[str] = set()

    def is_busy(self, path: str) -> bool:
        return normalize_path(path) in self._busy

    def try_acquire(self, path: str) -> bool:
        key = normalize_path(path)
        if key in self._busy:
            return False
        self._busy.add(key)
        return True

    def release(self, path: str) -> None:
        self._busy.discard(normalize_path(path))

    def __len__(self) -> int:
        return len(self._busy)


class LibraryState:
    """
    Process-wide store shared by the scanner and the cleanup engine.

    Created once at start-up and passed to every component; close() persists
    the cache at shutdown.
    """

    def __init__(self, cache, busy: Optional[BusyRegistry] = None):
        self.cache = cache
        self.busy = busy or BusyRegistry()
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.cache.save()
        self.closed = True
