from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class JunkManifest(BaseModel):
    """
    Redundant runtime files/folders found in one game folder.
    Always reflects the disk at the time it was computed; never cached.
    """
    removable_files: set[str] = Field(default_factory=set)
    removable_folders: set[str] = Field(default_factory=set)
    warnings: list[str] = Field(default_factory=list)

    @property
    def item_count(self) -> int:
        return len(self.removable_files) + len(self.removable_folders)

    @property
    def is_empty(self) -> bool:
        return self.item_count == 0

    def items(self) -> List[str]:
        """Files first, then folders, each in name order."""
        return sorted(self.removable_files, key=str.lower) + sorted(self.removable_folders, key=str.lower)


class CleanupOutcome(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"      # everything removed
    ROLLED_BACK = "rolled_back"  # nothing removed
    FAILED = "failed"            # staged but the staging directory survived


class DeleteMethod(str, Enum):
    TRASH = "trash"
    PERMANENT = "permanent"


class CleanupTransaction(BaseModel):
    folder_path: str
    staging_name: str
    staged_items: list[str] = Field(default_factory=list)
    skipped_items: list[str] = Field(default_factory=list)
    outcome: CleanupOutcome = CleanupOutcome.PENDING
    delete_method: Optional[DeleteMethod] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == CleanupOutcome.COMMITTED


class ConfirmationSummary(BaseModel):
    """What the operator sees before a cleanup commits."""
    folder_path: str
    item_count: int
    estimated_bytes: int
    network_warning: bool = False
    warnings: list[str] = Field(default_factory=list)


class CleanupState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FolderStatus(str, Enum):
    CLEANED = "cleaned"
    ALREADY_SLIM = "already_slim"
    CONFLICT = "conflict"
    FAILED = "failed"


class FolderCleanupResult(BaseModel):
    folder_path: str
    status: FolderStatus
    removed_items: int = 0
    warnings: list[str] = Field(default_factory=list)
    error: Optional[str] = None


class BatchReport(BaseModel):
    results: list[FolderCleanupResult] = Field(default_factory=list)
    log_lines: list[str] = Field(default_factory=list)

    def _count(self, status: FolderStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def succeeded(self) -> int:
        return self._count(FolderStatus.CLEANED)

    @property
    def failed(self) -> int:
        return self._count(FolderStatus.FAILED)

    @property
    def conflicts(self) -> int:
        return self._count(FolderStatus.CONFLICT)

    @property
    def already_slim(self) -> int:
        return self._count(FolderStatus.ALREADY_SLIM)
