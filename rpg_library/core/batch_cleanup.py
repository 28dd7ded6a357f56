import os
import time
from typing import Callable, Iterable, List, Optional

from ..models.cleanup import BatchReport, FolderCleanupResult, FolderStatus
from ..models.game_record import GameRecord
from ..scanner.manager import ScanOrchestrator
from .cleaner import AtomicCleaner
from .drive_info import DriveClassifier
from .junk_detector import JunkDetector


def non_slim_folders(records: Iterable[GameRecord]) -> List[str]:
    """Folders of every game still carrying its own runtime, in list order."""
    return [r.folder_path for r in records if not r.is_slim]


class BatchCleanupCoordinator:
    """
    Cleans a list of folders one after another.

    A failing or busy folder is reported and the batch moves on; nothing here
    aborts the loop. Every log line is timestamped and goes to the progress
    callback, the report and (when configured) the cleanup log file.
    """

    def __init__(
        self,
        orchestrator: ScanOrchestrator,
        cleaner: AtomicCleaner,
        detector: Optional[JunkDetector] = None,
        drives: Optional[DriveClassifier] = None,
        log_file: Optional[str] = None,
    ):
        self.orchestrator = orchestrator
        self.state = orchestrator.state
        self.cleaner = cleaner
        self.detector = detector or orchestrator.junk_detector
        self.drives = drives
        self.log_file = log_file

    async def run(self, folders: Iterable[str], progress_callback: Optional[Callable[[str], None]] = None) -> BatchReport:
        report = BatchReport()
        # One drive session for the whole batch
        drives = self.drives or DriveClassifier()
        folders = list(folders)

        def log(msg: str):
            line = f"[{time.strftime('%Y-%m-%d %H:%M:%S')}] {msg}"
            report.log_lines.append(line)
            if progress_callback:
                progress_callback(line)

        log(f"Batch cleanup started for {len(folders)} folder(s)")
        for folder_path in folders:
            result = await self._clean_one(folder_path, drives, log)
            report.results.append(result)

        log(
            f"Batch finished: {report.succeeded} cleaned, {report.already_slim} already slim, "
            f"{report.conflicts} busy, {report.failed} failed"
        )
        self._append_log(report.log_lines)
        return report

    async def _clean_one(self, folder_path: str, drives: DriveClassifier, log) -> FolderCleanupResult:
        name = os.path.basename(os.path.normpath(folder_path))
        busy = self.state.busy
        if not busy.try_acquire(folder_path):
            log(f"⚠ {name}: busy, skipped")
            return FolderCleanupResult(folder_path=folder_path, status=FolderStatus.CONFLICT)

        try:
            result = await self._process(folder_path, name, drives, log)
        finally:
            busy.release(folder_path)

        await self.orchestrator.refresh_folder(folder_path)
        return result

    async def _process(self, folder_path: str, name: str, drives: DriveClassifier, log) -> FolderCleanupResult:
        try:
            classification = await self.orchestrator.classifier.classify(folder_path, name)
            if classification is None:
                log(f"✗ {name}: not a game folder")
                return FolderCleanupResult(
                    folder_path=folder_path, status=FolderStatus.FAILED, error="Not a game folder"
                )

            manifest = await self.detector.detect(folder_path, classification)
            for warning in manifest.warnings:
                log(f"⚠ {name}: {warning}")
            if manifest.is_empty:
                log(f"✓ {name}: already slim")
                return FolderCleanupResult(
                    folder_path=folder_path, status=FolderStatus.ALREADY_SLIM, warnings=manifest.warnings
                )

            drive_class = await drives.classify(folder_path)
        except OSError as e:
            log(f"✗ {name}: {e}")
            return FolderCleanupResult(folder_path=folder_path, status=FolderStatus.FAILED, error=str(e))

        log(f"{name}: removing {manifest.item_count} item(s) ({drive_class.value} drive)")
        tx = await self.cleaner.clean(folder_path, manifest, drive_class, lambda msg: log(f"{name}: {msg.strip()}"))

        if tx.succeeded:
            return FolderCleanupResult(
                folder_path=folder_path,
                status=FolderStatus.CLEANED,
                removed_items=len(tx.staged_items),
                warnings=manifest.warnings,
            )
        return FolderCleanupResult(
            folder_path=folder_path,
            status=FolderStatus.FAILED,
            warnings=manifest.warnings,
            error=f"{tx.outcome.value}: {tx.error}",
        )

    def _append_log(self, lines: List[str]) -> None:
        if not self.log_file:
            return
        try:
            os.makedirs(os.path.dirname(self.log_file) or ".", exist_ok=True)
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")
        except OSError as e:
            print(f"⚠️ Could not write cleanup log: {e}")
