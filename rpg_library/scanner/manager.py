import os
import time
from typing import Callable, List, Optional

from ..config import MAX_SCAN_DEPTH
from ..core.junk_detector import JunkDetector
from ..core.state import LibraryState
from ..errors import LibraryRootError
from ..models.game_record import GameRecord
from .classifier import PathClassifier, is_ignored_folder
from .file_system import FileSystem
from .metadata import MetadataExtractor

ProgressCallback = Optional[Callable[[str], None]]


class ScanOrchestrator:
    """
    Orchestrates a library scan:
    1. Directory walk (flat or depth-bounded recursive)
    2. Cache validation (MetadataCache tier a)
    3. Classification + metadata extraction + slim check
    4. Persistence (MetadataCache tier b)

    Siblings are visited one after another in name order, never in parallel.
    """

    def __init__(
        self,
        fs: FileSystem,
        state: LibraryState,
        classifier: Optional[PathClassifier] = None,
        extractor: Optional[MetadataExtractor] = None,
        junk_detector: Optional[JunkDetector] = None,
        max_depth: int = MAX_SCAN_DEPTH,
    ):
        self.fs = fs
        self.state = state
        self.classifier = classifier or PathClassifier(fs)
        self.extractor = extractor or MetadataExtractor(fs)
        self.junk_detector = junk_detector or JunkDetector(fs)
        self.max_depth = max_depth

    def load_library(self, root: str) -> List[GameRecord]:
        """Last full-scan result for root, for display while a rescan runs."""
        return self.state.cache.get_library(root)

    async def scan_library(
        self,
        root: str,
        recursive: bool = False,
        force: bool = False,
        progress_callback: ProgressCallback = None,
    ) -> List[GameRecord]:
        """
        Full scan of root. Raises LibraryRootError when root itself cannot be
        listed; any unreadable folder below it is skipped.
        """
        root = os.path.abspath(root)
        start_time = time.time()

        try:
            entries = await self.fs.list_dir(root)
        except OSError as e:
            raise LibraryRootError(root, str(e))

        games: List[GameRecord] = []
        for entry in _sorted_dirs(entries):
            path = os.path.join(root, entry.name)
            if recursive:
                await self._scan_recursive(path, entry.name, self.max_depth, force, games, progress_callback)
            else:
                record = await self.scan_folder(path, entry.name, force=force)
                self._record(record, games, progress_callback)

        self.state.cache.replace_library(root, games)
        self.state.cache.save()

        duration = time.time() - start_time
        print(f"✅ Scan of {root} completed in {duration:.2f}s. Found {len(games)} games.")
        return games

    async def _scan_recursive(
        self,
        path: str,
        name: str,
        depth: int,
        force: bool,
        games: List[GameRecord],
        progress_callback: ProgressCallback,
    ) -> None:
        if depth <= 0 or is_ignored_folder(name):
            return

        record = await self.scan_folder(path, name, force=force)
        if record is not None:
            # A game's own subfolders are never scanned as further games
            self._record(record, games, progress_callback)
            return
        if self.state.busy.is_busy(path):
            return

        try:
            entries = await self.fs.list_dir(path)
        except OSError:
            return

        for entry in _sorted_dirs(entries):
            await self._scan_recursive(
                os.path.join(path, entry.name), entry.name, depth - 1, force, games, progress_callback
            )

    async def scan_folder(self, folder_path: str, folder_name: Optional[str] = None, force: bool = False) -> Optional[GameRecord]:
        """
        Record for one folder, or None when it is not a game or is busy.
        A busy folder is not waited on; the next scan picks it up.
        """
        name = folder_name if folder_name is not None else os.path.basename(os.path.normpath(folder_path))
        busy = self.state.busy
        if not busy.try_acquire(folder_path):
            return None
        try:
            if not force:
                cached = await self.state.cache.get(folder_path)
                if cached is not None:
                    return cached

            record = await self._evaluate(folder_path, name)
            if record is None:
                self.state.cache.evict(folder_path)
            else:
                self.state.cache.put(record)
            return record
        finally:
            busy.release(folder_path)

    async def refresh_folder(self, folder_path: str) -> Optional[GameRecord]:
        """Forced re-evaluation after a cleanup; updates every cache tier."""
        record = await self.scan_folder(folder_path, force=True)
        if record is not None or not self.state.busy.is_busy(folder_path):
            self.state.cache.refresh(folder_path, record)
        return record

    async def _evaluate(self, folder_path: str, name: str) -> Optional[GameRecord]:
        classification = await self.classifier.classify(folder_path, name)
        if classification is None:
            return None

        record = await self.extractor.extract(folder_path, name, classification)
        try:
            manifest = await self.junk_detector.detect(folder_path, classification)
            record.is_slim = manifest.is_empty
        except OSError:
            # Listing failed between classification and detection
            record.is_slim = False
        return record

    def _record(self, record: Optional[GameRecord], games: List[GameRecord], progress_callback: ProgressCallback) -> None:
        if record is None:
            return
        games.append(record)
        if progress_callback:
            slim = " [SLIM]" if record.is_slim else ""
            progress_callback(f"Found {record.title} ({record.engine_type.value}){slim}")


def _sorted_dirs(entries):
    return sorted((e for e in entries if e.is_dir), key=lambda e: e.name.lower())
