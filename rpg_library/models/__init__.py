from .game_record import (
    Classification,
    EngineType,
    GameRecord,
    LaunchTarget,
    WindowConfig,
    resolve_launch_target,
)
from .cleanup import (
    BatchReport,
    CleanupOutcome,
    CleanupState,
    CleanupTransaction,
    ConfirmationSummary,
    DeleteMethod,
    FolderCleanupResult,
    FolderStatus,
    JunkManifest,
)

__all__ = [
    'BatchReport',
    'Classification',
    'CleanupOutcome',
    'CleanupState',
    'CleanupTransaction',
    'ConfirmationSummary',
    'DeleteMethod',
    'EngineType',
    'FolderCleanupResult',
    'FolderStatus',
    'GameRecord',
    'JunkManifest',
    'LaunchTarget',
    'WindowConfig',
    'resolve_launch_target',
]
