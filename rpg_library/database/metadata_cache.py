from typing import Dict, List, Optional

from ..core.state import normalize_path
from ..errors import StaleCacheEntry
from ..models.game_record import GameRecord
from ..scanner.file_system import FileSystem
from .json_store import JSONStore


class MetadataCache:
    """
    Two-tier record cache.

    Tier (a), per folder: the last GameRecord computed for a folder. Trusted
    only while the folder still exists; the check happens on every read.
    Tier (b), per library root: the complete list from the last full scan,
    served as-is for an immediate (possibly stale) view while a rescan runs.
    """

    def __init__(self, fs: FileSystem, store: Optional[JSONStore] = None):
        self.fs = fs
        self.store = store or JSONStore(None)
        self._folders: Dict[str, GameRecord] = {}
        self._libraries: Dict[str, List[GameRecord]] = {}
        self.dirty = False

    def load(self) -> None:
        self._folders, self._libraries = self.store.load()
        self.dirty = False
        if self._folders or self._libraries:
            print(f"📂 Cache loaded ({len(self._folders)} folders, {len(self._libraries)} libraries)")

    def save(self) -> None:
        if not self.dirty:
            return
        self.store.save(self._folders, self._libraries)
        self.dirty = False

    # --- Tier (a) ---

    async def get(self, folder_path: str) -> Optional[GameRecord]:
        """Cached record for folder_path, or None on a miss (including stale entries)."""
        key = normalize_path(folder_path)
        record = self._folders.get(key)
        if record is None:
            return None
        try:
            await self._validate(record)
        except StaleCacheEntry:
            self.evict(folder_path)
            return None
        return record

    async def _validate(self, record: GameRecord) -> None:
        try:
            exists = await self.fs.is_dir(record.folder_path)
        except OSError:
            exists = False
        if not exists:
            raise StaleCacheEntry(record.folder_path)

    def put(self, record: GameRecord) -> None:
        self._folders[normalize_path(record.folder_path)] = record
        self.dirty = True

    def evict(self, folder_path: str) -> None:
        if self._folders.pop(normalize_path(folder_path), None) is not None:
            self.dirty = True

    def peek(self, folder_path: str) -> Optional[GameRecord]:
        """Tier (a) lookup without the existence check."""
        return self._folders.get(normalize_path(folder_path))

    # --- Tier (b) ---

    def get_library(self, root: str) -> List[GameRecord]:
        return list(self._libraries.get(normalize_path(root), []))

    def replace_library(self, root: str, records: List[GameRecord]) -> None:
        self._libraries[normalize_path(root)] = list(records)
        self.dirty = True

    def refresh(self, folder_path: str, record: Optional[GameRecord]) -> None:
        """
        Write a re-evaluated record through both tiers.
        None means the folder is no longer a game and drops out everywhere.
        """
        key = normalize_path(folder_path)
        if record is None:
            self.evict(folder_path)
        else:
            self.put(record)

        for root, records in self._libraries.items():
            updated = []
            changed = False
            for r in records:
                if normalize_path(r.folder_path) == key:
                    changed = True
                    if record is not None:
                        updated.append(record)
                else:
                    updated.append(r)
            if changed:
                self._libraries[root] = updated
                self.dirty = True
