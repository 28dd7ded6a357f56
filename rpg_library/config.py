import os
import sys
import json
from typing import Any, Dict
from pydantic import Field
from pydantic_settings import BaseSettings

# ==============================================================================
# CONSTANTS & PATHS
# ==============================================================================

IS_WIN = sys.platform == "win32"
HOME_DIR = os.path.expanduser("~")

# Data Directory
# Support relocating all persistent data via environment variable
_DATA_DIR_OVERRIDE = os.getenv("RPGL_DATA_DIR")

if _DATA_DIR_OVERRIDE:
    DATA_DIR = _DATA_DIR_OVERRIDE
else:
    DATA_DIR = os.path.join(HOME_DIR, ".rpg-library")


# Recursive scans look at most this many levels below the library root
MAX_SCAN_DEPTH = 3

# Internal asset directories of an engine; never treated as sibling games
IGNORED_FOLDER_NAMES = frozenset({
    "manual", "help", "readme", "documentation",
    "css", "js", "fonts", "images", "img", "audio",
    "locales", "app", "resources", "www", "icon",
})

# Staging directories created by the cleaner inside a game folder
STAGING_PREFIX = ".rpgl-staging-"

# Engine detection markers
WEB_ENGINE_MARKERS = ("rpg_core.js", "rmmz_core.js")
TYRANO_DIR = "tyrano"
LEGACY_EXECUTABLES = ("Game.exe", "RPG_RT.exe")

# package.json names generated by the editors for untitled projects
PLACEHOLDER_PACKAGE_NAMES = frozenset({"rmmz-game", "rpg-maker-mv", "rmmv-game", "game"})

ICON_CANDIDATES = ("icon.png", "www/icon.png", "icon/icon.png")

# Runtime support files shipped with a bundled NW.js copy
RUNTIME_FILES = (
    "nw.exe",
    "Game.exe",
    "crashpad_handler.exe",
    "notification_helper.exe",
    "nw.dll",
    "node.dll",
    "nw_elf.dll",
    "ffmpeg.dll",
    "libGLESv2.dll",
    "libEGL.dll",
    "vk_swiftshader.dll",
    "vk_swiftshader_icd.json",
    "vulkan-1.dll",
    "vulcan-1.dll",
    "d3dcompiler_47.dll",
    "nw_100_percent.pak",
    "nw_200_percent.pak",
    "resources.pak",
    "icudtl.dat",
    "v8_context_snapshot.bin",
    "natives_blob.bin",
    "snapshot_blob.bin",
    "credits.html",
)
RUNTIME_FOLDERS = ("locales", "swiftshader", "pnacl")
UNINSTALLER_PREFIX = "unins"

# Default Settings (with documentation keys)
DEFAULT_SETTINGS_JSON = {
    "_comment_library_path": "Absolute path of the folder holding your games.",
    "library_path": "",
    "_comment_recursive_scan": "Look for games inside sub-folders (up to 3 levels deep).",
    "recursive_scan": False,
    "_comment_web_window": "Window size used for web games whose package.json has no window block.",
    "web_width": 816,
    "web_height": 624,
    "web_fullscreen": False,
    "_comment_cleanup_pace_ms": "Pause between cleanup steps so progress stays readable.",
    "cleanup_pace_ms": 50,
}

# ==============================================================================
# SETTINGS MODEL
# ==============================================================================

class AppSettings(BaseSettings):
    """
    Pydantic model for user settings.
    Loads from env vars (RPGL_*) or defaults.
    File loading is handled manually to preserve JSON comments.
    """
    library_path: str = Field("")
    recursive_scan: bool = Field(False)

    web_width: int = Field(816)
    web_height: int = Field(624)
    web_fullscreen: bool = Field(False)

    cleanup_pace_ms: int = Field(50)

    class Config:
        env_prefix = "RPGL_"
        extra = "ignore"

# ==============================================================================
# CONFIG MANAGER
# ==============================================================================

class ConfigManager:
    def __init__(self, data_dir: str = DATA_DIR):
        self._data_dir = data_dir
        self._settings_file = os.path.join(data_dir, "settings.json")
        self._ensure_directories()
        self.settings = self._load_settings()

    def _ensure_directories(self):
        if not os.path.exists(self._data_dir):
            os.makedirs(self._data_dir)

    def _load_settings(self) -> AppSettings:
        file_data = {}
        if os.path.exists(self._settings_file):
            try:
                with open(self._settings_file, "r", encoding="utf-8") as f:
                    file_data = json.load(f)

                # Check for missing defaults and update file if needed
                dirty = False
                for k, v in DEFAULT_SETTINGS_JSON.items():
                    if k not in file_data:
                        file_data[k] = v
                        dirty = True

                if dirty:
                    self._save_json_raw(file_data)

            except Exception as e:
                print(f"⚠️ Warning: Could not read settings.json: {e}")
                file_data = {}

        return AppSettings(**file_data)

    def _save_json_raw(self, data: Dict[str, Any]):
        try:
            with open(self._settings_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            print(f"❌ Error saving settings: {e}")

    def save(self, updates: Dict[str, Any]) -> bool:
        """
        Updates current settings with new values and saves to disk.
        Preserves existing keys (like comments).
        """
        try:
            current_raw = dict(DEFAULT_SETTINGS_JSON)
            if os.path.exists(self._settings_file):
                with open(self._settings_file, "r", encoding="utf-8") as f:
                    current_raw = json.load(f)

            current_raw.update(updates)
            self._save_json_raw(current_raw)

            self.settings = AppSettings(**current_raw)
            return True
        except (OSError, ValueError) as e:
            print(f"❌ Save failed: {e}")
            return False

    @property
    def data_dir(self) -> str:
        return self._data_dir

    @property
    def cache_file(self) -> str:
        return os.path.join(self._data_dir, "library_cache.json")

    @property
    def cleanup_log_file(self) -> str:
        return os.path.join(self._data_dir, "cleanup.log")

    @property
    def cleanup_pace(self) -> float:
        return max(self.settings.cleanup_pace_ms, 0) / 1000.0


_config_instance = None
def get_config() -> ConfigManager:
    global _config_instance
    if _config_instance is None:
        _config_instance = ConfigManager()
    return _config_instance
