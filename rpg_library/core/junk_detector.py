from typing import Iterable, Optional

from ..config import RUNTIME_FILES, RUNTIME_FOLDERS, UNINSTALLER_PREFIX
from ..models.cleanup import JunkManifest
from ..models.game_record import Classification, EngineType
from ..scanner.file_system import FileSystem


class JunkDetector:
    """
    Finds the bundled NW.js runtime left in a game folder.

    A game that runs through the shared host no longer needs its own copy of
    the runtime. The manifest lists what is there right now, matched
    case-insensitively against a single listing of the folder root, and keeps
    the on-disk spelling of each name.
    """

    def __init__(
        self,
        fs: FileSystem,
        runtime_files: Iterable[str] = RUNTIME_FILES,
        runtime_folders: Iterable[str] = RUNTIME_FOLDERS,
    ):
        self.fs = fs
        self.runtime_files = frozenset(n.lower() for n in runtime_files)
        self.runtime_folders = frozenset(n.lower() for n in runtime_folders)

    async def detect(self, folder_path: str, classification: Optional[Classification] = None) -> JunkManifest:
        engine = classification.engine_type if classification else EngineType.WEB
        if engine in (EngineType.LEGACY, EngineType.UNKNOWN):
            return JunkManifest(warnings=[
                "Standalone executable game: it runs on its own bundled runtime, nothing is removable."
            ])
        if engine not in (EngineType.WEB, EngineType.TYRANO):
            raise ValueError(f"Unhandled engine type: {engine!r}")

        entries = await self.fs.list_dir(folder_path)
        protected = _protected_names(classification)

        manifest = JunkManifest()
        extra_executables = []
        for entry in entries:
            lower = entry.name.lower()
            if lower in protected:
                continue
            if entry.is_dir:
                if lower in self.runtime_folders:
                    manifest.removable_folders.add(entry.name)
                continue
            if not entry.is_file:
                continue
            if lower in self.runtime_files:
                manifest.removable_files.add(entry.name)
            elif lower.endswith(".exe") and not lower.startswith(UNINSTALLER_PREFIX):
                extra_executables.append(entry.name)

        if len(extra_executables) == 1:
            # A renamed copy of nw.exe: the only launcher left, so it is the bundled one
            manifest.removable_files.add(extra_executables[0])
        elif len(extra_executables) > 1:
            names = ", ".join(sorted(extra_executables, key=str.lower))
            manifest.warnings.append(
                f"Multiple unrecognized executables ({names}); none were selected. "
                "Remove the game's launcher manually if it is a copy of the runtime."
            )

        return manifest

    async def is_slim(self, folder_path: str, classification: Optional[Classification] = None) -> bool:
        manifest = await self.detect(folder_path, classification)
        return manifest.is_empty


def _protected_names(classification: Optional[Classification]) -> frozenset:
    """Top-level names the game cannot run without."""
    names = {"package.json", "index.html", "www"}
    if classification:
        names.add(classification.entry_point.split("/", 1)[0].lower())
    return frozenset(names)
