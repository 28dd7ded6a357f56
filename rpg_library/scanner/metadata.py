import os
import re
import json
import codecs
from typing import Any, Dict, List, Optional, Tuple

from ..config import ICON_CANDIDATES, PLACEHOLDER_PACKAGE_NAMES
from ..errors import ConfigParseError
from ..models.game_record import Classification, EngineType, GameRecord, WindowConfig
from .file_system import FileSystem

# [RJ123456], [ vj0123456 ] ... DLsite-style codes in brackets
_BRACKETED_CODE_RE = re.compile(r"\[\s*[A-Za-z]{2}\d+\s*\]")
_PRODUCT_CODE_RE = re.compile(r"(?<![A-Za-z])([A-Za-z]{2}\d{6,8})(?!\d)")
_TYRANO_TITLE_RE = re.compile(r'System\.title\s*=\s*"(.*?)"')


def extract_product_code(folder_name: str) -> Optional[str]:
    match = _PRODUCT_CODE_RE.search(folder_name)
    return match.group(1).upper() if match else None


def clean_folder_title(folder_name: str) -> str:
    title = _BRACKETED_CODE_RE.sub("", folder_name)
    title = " ".join(title.split())
    return title or folder_name


def decode_config_text(raw: bytes) -> str:
    """Config.tjs is written either as UTF-16 LE with a BOM or as UTF-8."""
    if raw.startswith(codecs.BOM_UTF16_LE):
        return raw[len(codecs.BOM_UTF16_LE):].decode("utf-16-le")
    return raw.decode("utf-8-sig")


class MetadataExtractor:
    """Builds the display fields of a GameRecord for a classified folder."""

    def __init__(self, fs: FileSystem):
        self.fs = fs

    async def extract(self, folder_path: str, folder_name: str, classification: Classification) -> GameRecord:
        engine = classification.engine_type
        base = _entry_base(classification.entry_point)

        # 1. Engine-specific structured source
        title = await self._engine_title(folder_path, base, engine)

        # 2. package.json (window hints are captured even when a title already exists)
        package_name, window_config = await self._read_package(folder_path)
        if not title:
            title = package_name

        # 3. Folder name
        if not title:
            title = clean_folder_title(folder_name)

        last_modified = 0.0
        try:
            last_modified = (await self.fs.stat(folder_path)).mtime
        except OSError:
            pass

        return GameRecord(
            title=title,
            folder_path=folder_path,
            entry_point=classification.entry_point,
            icon_path=await self._find_icon(folder_path),
            window_config=window_config,
            engine_type=engine,
            external_id=extract_product_code(folder_name),
            last_modified=last_modified,
        )

    async def _engine_title(self, folder_path: str, base: str, engine: EngineType) -> Optional[str]:
        if engine == EngineType.WEB:
            for path in _ordered_candidates(folder_path, base, "data/System.json"):
                try:
                    data = await self._read_json(path)
                except ConfigParseError:
                    continue
                if data is None:
                    continue
                title = data.get("gameTitle")
                if isinstance(title, str) and title.strip():
                    return title.strip()
            return None

        if engine == EngineType.TYRANO:
            for path in _ordered_candidates(folder_path, base, "data/system/Config.tjs"):
                try:
                    text = await self._read_text(path)
                except ConfigParseError:
                    continue
                if text is None:
                    continue
                match = _TYRANO_TITLE_RE.search(text)
                if match and match.group(1).strip():
                    return match.group(1).strip()
            return None

        if engine in (EngineType.LEGACY, EngineType.UNKNOWN):
            return None

        raise ValueError(f"Unhandled engine type: {engine!r}")

    async def _read_package(self, folder_path: str) -> Tuple[Optional[str], Optional[WindowConfig]]:
        """First usable name across both copies; window hints from the first parseable one."""
        name = None
        window_config = None
        found = False
        for rel in ("package.json", "www/package.json"):
            path = os.path.join(folder_path, *rel.split("/"))
            try:
                data = await self._read_json(path)
            except ConfigParseError:
                continue
            if data is None:
                continue

            if not found:
                window_config = _window_config(data.get("window"))
                found = True
            candidate = data.get("name")
            if isinstance(candidate, str) and candidate.strip() and candidate.strip().lower() not in PLACEHOLDER_PACKAGE_NAMES:
                name = candidate.strip()
                break
        return name, window_config

    async def _find_icon(self, folder_path: str) -> Optional[str]:
        for rel in ICON_CANDIDATES:
            path = os.path.join(folder_path, *rel.split("/"))
            if await self.fs.is_file(path):
                return path
        return None

    async def _read_text(self, path: str) -> Optional[str]:
        """Returns None when the file is missing; raises ConfigParseError when unreadable."""
        if not await self.fs.is_file(path):
            return None
        try:
            raw = await self.fs.read_bytes(path)
            return decode_config_text(raw)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigParseError(path, str(e))

    async def _read_json(self, path: str) -> Optional[Dict[str, Any]]:
        text = await self._read_text(path)
        if text is None:
            return None
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ConfigParseError(path, str(e))
        if not isinstance(data, dict):
            raise ConfigParseError(path, "top-level value is not an object")
        return data


def _entry_base(entry_point: str) -> str:
    return entry_point.rsplit("/", 1)[0] if "/" in entry_point else ""


def _ordered_candidates(folder_path: str, base: str, rel: str) -> List[str]:
    """The copy beside the entry point first, then the other layout."""
    bases = [base, "www" if base == "" else ""]
    paths = []
    for b in bases:
        parts = ([b] if b else []) + rel.split("/")
        paths.append(os.path.join(folder_path, *parts))
    return paths


def _window_config(window: Any) -> Optional[WindowConfig]:
    if not isinstance(window, dict):
        return None

    def _int(v):
        if isinstance(v, bool):
            return None
        if isinstance(v, (int, float)) and v > 0:
            return int(v)
        return None

    fullscreen = window.get("fullscreen")
    return WindowConfig(
        width=_int(window.get("width")),
        height=_int(window.get("height")),
        fullscreen=fullscreen if isinstance(fullscreen, bool) else None,
    )
