import os
from typing import Iterable, Optional

from ..config import (
    IGNORED_FOLDER_NAMES,
    LEGACY_EXECUTABLES,
    STAGING_PREFIX,
    TYRANO_DIR,
    WEB_ENGINE_MARKERS,
)
from ..models.game_record import Classification, EngineType
from .file_system import FileSystem


def is_ignored_folder(name: str, ignored: Iterable[str] = IGNORED_FOLDER_NAMES) -> bool:
    """Engine-internal asset folders and our own staging folders are never games."""
    if name.startswith(STAGING_PREFIX):
        return True
    return name.lower() in ignored


class PathClassifier:
    """
    Decides whether a folder is a game and which engine runs it.
    Returns None for anything that is not a game; the caller recurses instead.
    """

    def __init__(self, fs: FileSystem, ignored_names: Iterable[str] = IGNORED_FOLDER_NAMES):
        self.fs = fs
        self.ignored_names = frozenset(n.lower() for n in ignored_names)

    async def classify(self, folder_path: str, folder_name: Optional[str] = None) -> Optional[Classification]:
        name = folder_name if folder_name is not None else os.path.basename(os.path.normpath(folder_path))
        if is_ignored_folder(name, self.ignored_names):
            return None

        has_index = await self.fs.is_file(os.path.join(folder_path, "index.html"))
        www = os.path.join(folder_path, "www")

        if has_index:
            # 1. MV/MZ core scripts beside the HTML
            if await self._has_web_markers(folder_path):
                return Classification(engine_type=EngineType.WEB, entry_point="index.html")
            # 2. TyranoBuilder
            if await self.fs.is_dir(os.path.join(folder_path, TYRANO_DIR)):
                return Classification(engine_type=EngineType.TYRANO, entry_point="index.html")
            # 3. HTML at root, scripts nested under www/
            if await self._has_web_markers(www):
                return Classification(engine_type=EngineType.WEB, entry_point="index.html")
            return None

        if await self.fs.is_file(os.path.join(www, "index.html")):
            if await self._has_web_markers(www):
                return Classification(engine_type=EngineType.WEB, entry_point="www/index.html")
            if await self.fs.is_dir(os.path.join(www, TYRANO_DIR)):
                return Classification(engine_type=EngineType.TYRANO, entry_point="www/index.html")
            return None

        return await self._classify_legacy(folder_path)

    async def _has_web_markers(self, base: str) -> bool:
        for marker in WEB_ENGINE_MARKERS:
            if await self.fs.is_file(os.path.join(base, "js", marker)):
                return True
        return False

    async def _classify_legacy(self, folder_path: str) -> Optional[Classification]:
        """Standalone executables (RPG Maker 2000/2003/XP/VX style)."""
        try:
            entries = await self.fs.list_dir(folder_path)
        except OSError:
            return None

        files = {e.name.lower(): e.name for e in entries if e.is_file}
        for exe in LEGACY_EXECUTABLES:
            actual = files.get(exe.lower())
            if actual:
                return Classification(engine_type=EngineType.LEGACY, entry_point=actual)
        return None
