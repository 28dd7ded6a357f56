import os
import uuid
import asyncio
from typing import Callable, Optional

from ..config import STAGING_PREFIX
from ..errors import (
    ConcurrencyConflict,
    CrossVolumeMoveFailure,
    FinalDeleteFailure,
    InvalidCleanupState,
    StagingFailure,
)
from ..models.cleanup import (
    CleanupOutcome,
    CleanupState,
    CleanupTransaction,
    ConfirmationSummary,
    DeleteMethod,
    JunkManifest,
)
from ..scanner.file_system import FileSystem
from .drive_info import DriveClass, DriveClassifier
from .junk_detector import JunkDetector
from .state import LibraryState

ProgressCallback = Optional[Callable[[str], None]]


class AtomicCleaner:
    """
    Removes one folder's junk manifest as a single unit.

    Every item is first moved into a private staging directory inside the
    folder, then the staging directory is deleted in one call. At any moment
    each item is either at its original name or inside the staging directory.
    """

    def __init__(self, fs: FileSystem, pace: float = 0.0):
        self.fs = fs
        self.pace = pace

    async def clean(
        self,
        folder_path: str,
        manifest: JunkManifest,
        drive_class: DriveClass,
        progress_callback: ProgressCallback = None,
    ) -> CleanupTransaction:
        emit = progress_callback or (lambda _msg: None)
        staging_name = await self._unique_staging_name(folder_path)
        staging_path = os.path.join(folder_path, staging_name)
        tx = CleanupTransaction(folder_path=folder_path, staging_name=staging_name)

        try:
            await self.fs.make_dir(staging_path)
        except OSError as e:
            tx.outcome = CleanupOutcome.ROLLED_BACK
            tx.error = f"Could not create staging directory: {e}"
            emit(f"✗ {tx.error}")
            return tx

        # 1. Stage
        for item in manifest.items():
            src = os.path.join(folder_path, item)
            dst = os.path.join(staging_path, item)
            try:
                staged = await self._stage_item(src, dst, item)
            except StagingFailure as e:
                tx.error = str(e)
                emit(f"✗ {e}")
                if e.copy_kept:
                    tx.staged_items.append(item)
                await self._rollback(tx, staging_path, emit)
                return tx

            if staged:
                tx.staged_items.append(item)
                emit(f"  staged {item}")
            else:
                tx.skipped_items.append(item)
                emit(f"  {item} already gone, skipped")
            await self._pace()

        # 2. Commit: one delete for the whole set
        method = DeleteMethod.TRASH if drive_class.supports_trash else DeleteMethod.PERMANENT
        tx.delete_method = method
        try:
            await self._final_delete(staging_path, method)
        except FinalDeleteFailure as e:
            # Staged items stay isolated in the staging directory; no rollback
            tx.outcome = CleanupOutcome.FAILED
            tx.error = str(e)
            emit(f"✗ {e}")
            return tx

        tx.outcome = CleanupOutcome.COMMITTED
        verb = "moved to trash" if method == DeleteMethod.TRASH else "deleted permanently"
        emit(f"✓ {len(tx.staged_items)} item(s) {verb}")
        return tx

    async def _unique_staging_name(self, folder_path: str) -> str:
        while True:
            name = f"{STAGING_PREFIX}{uuid.uuid4().hex[:12]}"
            if not await self.fs.exists(os.path.join(folder_path, name)):
                return name

    async def _stage_item(self, src: str, dst: str, item: str) -> bool:
        """False when the item no longer exists."""
        if not await self.fs.exists(src):
            return False
        try:
            await self.fs.rename(src, dst)
            return True
        except OSError as e:
            failure = CrossVolumeMoveFailure(item, str(e))

        # Copy-then-delete fallback for this item only
        try:
            await self.fs.copy(src, dst)
        except OSError as e:
            await self._discard(dst)
            raise StagingFailure(item, f"{failure}; copy failed: {e}")
        try:
            await self.fs.remove(src)
        except OSError as e:
            # A recursive remove can stop halfway; refill the original from the copy
            try:
                await self.fs.copy_missing(dst, src)
            except OSError as restore_error:
                raise StagingFailure(
                    item,
                    f"{failure}; original partly removed ({e}) and could not be restored: {restore_error}",
                    copy_kept=True,
                )
            await self._discard(dst)
            raise StagingFailure(item, f"{failure}; original could not be removed: {e}")
        return True

    async def _discard(self, path: str) -> None:
        try:
            if await self.fs.exists(path):
                await self.fs.remove(path)
        except OSError as e:
            print(f"⚠️ Could not remove partial copy {path}: {e}")

    async def _rollback(self, tx: CleanupTransaction, staging_path: str, emit) -> None:
        """Put every staged item back under its original name."""
        restored = []
        for item in reversed(tx.staged_items):
            try:
                await self._restore_item(os.path.join(staging_path, item), os.path.join(tx.folder_path, item))
                restored.append(item)
                emit(f"  restored {item}")
            except OSError as e:
                emit(f"✗ Could not restore {item}: {e}")

        tx.staged_items = [i for i in tx.staged_items if i not in restored]
        if tx.staged_items:
            tx.outcome = CleanupOutcome.FAILED
            return

        try:
            await self.fs.remove(staging_path)
        except OSError as e:
            print(f"⚠️ Could not remove empty staging directory {staging_path}: {e}")
        tx.outcome = CleanupOutcome.ROLLED_BACK

    async def _restore_item(self, staged: str, original: str) -> None:
        """Move a staged item back, by copy when the rename fails again."""
        try:
            await self.fs.rename(staged, original)
            return
        except OSError:
            pass
        # The original may still hold leftovers of an interrupted remove
        await self.fs.copy_missing(staged, original)
        try:
            await self.fs.remove(staged)
        except OSError as e:
            # The original is complete again; only a duplicate stays behind
            print(f"⚠️ Could not remove restored copy {staged}: {e}")

    async def _final_delete(self, staging_path: str, method: DeleteMethod) -> None:
        try:
            if method == DeleteMethod.TRASH:
                await self.fs.trash(staging_path)
            else:
                await self.fs.remove(staging_path)
        except OSError as e:
            raise FinalDeleteFailure(staging_path, str(e))

    async def _pace(self) -> None:
        if self.pace > 0:
            await asyncio.sleep(self.pace)


class CleanupOperation:
    """
    One folder's cleanup, driven through
    Idle -> Analyzing -> AwaitingConfirmation -> Running -> Done | Failed.

    Cancellation is only possible before Running. Once staging starts, the
    transaction runs to completion even if the awaiting caller is cancelled.
    """

    def __init__(
        self,
        folder_path: str,
        fs: FileSystem,
        state: LibraryState,
        detector: JunkDetector,
        cleaner: AtomicCleaner,
        drives: DriveClassifier,
        classification=None,
        orchestrator=None,
    ):
        self.folder_path = folder_path
        self.fs = fs
        self.state = state
        self.detector = detector
        self.cleaner = cleaner
        self.drives = drives
        self.classification = classification
        self.orchestrator = orchestrator

        self.status = CleanupState.IDLE
        self.manifest: Optional[JunkManifest] = None
        self.summary: Optional[ConfirmationSummary] = None
        self.drive_class: Optional[DriveClass] = None
        self.transaction: Optional[CleanupTransaction] = None
        self._task: Optional[asyncio.Future] = None

    async def analyze(self) -> ConfirmationSummary:
        self._require(CleanupState.IDLE)
        self.status = CleanupState.ANALYZING
        try:
            self.manifest = await self.detector.detect(self.folder_path, self.classification)
            self.drive_class = await self.drives.classify(self.folder_path)
            estimated = await self._estimate_bytes(self.manifest)
        except OSError:
            self.status = CleanupState.FAILED
            raise

        self.summary = ConfirmationSummary(
            folder_path=self.folder_path,
            item_count=self.manifest.item_count,
            estimated_bytes=estimated,
            network_warning=self.drive_class == DriveClass.NETWORK,
            warnings=list(self.manifest.warnings),
        )
        self.status = CleanupState.AWAITING_CONFIRMATION
        return self.summary

    def cancel(self) -> None:
        if self.status in (CleanupState.IDLE, CleanupState.AWAITING_CONFIRMATION):
            self.status = CleanupState.CANCELLED
            return
        raise InvalidCleanupState(f"Cannot cancel a cleanup that is {self.status.value}")

    async def confirm(self, progress_callback: ProgressCallback = None) -> CleanupTransaction:
        """
        Runs the transaction. Raises ConcurrencyConflict without touching
        anything when the folder is already busy.
        """
        self._require(CleanupState.AWAITING_CONFIRMATION)
        if self.manifest.is_empty:
            # Nothing to stage; no staging directory is created
            self.transaction = CleanupTransaction(
                folder_path=self.folder_path, staging_name="", outcome=CleanupOutcome.COMMITTED
            )
            self.status = CleanupState.DONE
            return self.transaction

        if not self.state.busy.try_acquire(self.folder_path):
            raise ConcurrencyConflict(self.folder_path)

        self.status = CleanupState.RUNNING
        self._task = asyncio.ensure_future(self._run(progress_callback))
        self._task.add_done_callback(_consume_exception)
        return await asyncio.shield(self._task)

    async def _run(self, progress_callback: ProgressCallback) -> CleanupTransaction:
        try:
            tx = await self.cleaner.clean(self.folder_path, self.manifest, self.drive_class, progress_callback)
        except BaseException:
            self.status = CleanupState.FAILED
            raise
        finally:
            self.state.busy.release(self.folder_path)

        self.transaction = tx
        self.status = CleanupState.DONE if tx.succeeded else CleanupState.FAILED
        if self.orchestrator is not None:
            await self.orchestrator.refresh_folder(self.folder_path)
        return tx

    async def _estimate_bytes(self, manifest: JunkManifest) -> int:
        total = 0
        for name in manifest.removable_files:
            try:
                total += (await self.fs.stat(os.path.join(self.folder_path, name))).size
            except OSError:
                pass
        for name in manifest.removable_folders:
            try:
                total += await self.fs.dir_size(os.path.join(self.folder_path, name))
            except OSError:
                pass
        return total

    def _require(self, expected: CleanupState) -> None:
        if self.status != expected:
            raise InvalidCleanupState(
                f"Expected {expected.value}, cleanup is {self.status.value}"
            )


def _consume_exception(task: asyncio.Future) -> None:
    # A cancelled caller never awaits the shielded task; read its error here
    if not task.cancelled() and task.exception() is not None:
        print(f"❌ Cleanup task failed: {task.exception()}")
