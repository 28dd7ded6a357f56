"""
Exception types raised by the scanner and the cleanup engine.

Only LibraryRootError aborts a scan. Everything else is recovered close to
where it is raised, or surfaced as a refused request (ConcurrencyConflict,
InvalidCleanupState).
"""


class LibraryError(Exception):
    """Base class for all library errors."""
    pass


class LibraryRootError(LibraryError):
    """Raised when the library root itself cannot be read."""

    def __init__(self, root: str, reason: str):
        super().__init__(f"Cannot read library root {root}: {reason}")
        self.root = root
        self.reason = reason


class ConfigParseError(LibraryError):
    """A System.json / package.json / Config.tjs could not be parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path


class StaleCacheEntry(LibraryError):
    """A cached record points at a folder that no longer exists."""

    def __init__(self, folder_path: str):
        super().__init__(f"Cached folder no longer exists: {folder_path}")
        self.folder_path = folder_path


class ConcurrencyConflict(LibraryError):
    """The target folder is already being scanned or cleaned."""

    def __init__(self, folder_path: str):
        super().__init__(f"Folder is busy: {folder_path}")
        self.folder_path = folder_path


class InvalidCleanupState(LibraryError):
    """A cleanup operation was asked to do something its current state forbids."""
    pass


class CrossVolumeMoveFailure(LibraryError):
    """Rename into the staging directory failed; copy-then-delete is attempted next."""

    def __init__(self, item: str, reason: str):
        super().__init__(f"Rename failed for {item}: {reason}")
        self.item = item


class StagingFailure(LibraryError):
    """An item could be neither renamed nor copied into the staging directory."""

    def __init__(self, item: str, reason: str, copy_kept: bool = False):
        super().__init__(f"Could not stage {item}: {reason}")
        self.item = item
        # The staging directory holds the only complete copy of the item
        self.copy_kept = copy_kept


class FinalDeleteFailure(LibraryError):
    """The staging directory could not be trashed or deleted."""

    def __init__(self, staging_path: str, reason: str):
        super().__init__(f"Could not delete staging directory {staging_path}: {reason}")
        self.staging_path = staging_path
