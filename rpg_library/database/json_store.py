import json
import os
import shutil
import tempfile
from typing import Dict, List, Optional, Tuple

from ..models.game_record import GameRecord


class JSONStore:
    """
    Persists the library cache to a single JSON file.

    Layout:
        {"folders":   {<normalized folder path>: <GameRecord>},
         "libraries": {<normalized root path>: [<GameRecord>, ...]}}

    Records are written with their camelCase aliases. Readers fall back to
    defaults for missing fields, ignore unknown ones and skip entries that
    cannot be parsed at all.
    """

    def __init__(self, cache_file: Optional[str]):
        self.cache_file = cache_file

    def load(self) -> Tuple[Dict[str, GameRecord], Dict[str, List[GameRecord]]]:
        folders: Dict[str, GameRecord] = {}
        libraries: Dict[str, List[GameRecord]] = {}
        if not self.cache_file or not os.path.exists(self.cache_file):
            return folders, libraries

        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"❌ Error loading cache: {e}")
            return folders, libraries

        if not isinstance(raw_data, dict):
            return folders, libraries

        raw_folders = raw_data.get("folders")
        if isinstance(raw_folders, dict):
            for path, entry_dict in raw_folders.items():
                record = _parse_record(entry_dict, path)
                if record is not None:
                    folders[path] = record

        raw_libraries = raw_data.get("libraries")
        if isinstance(raw_libraries, dict):
            for root, entries in raw_libraries.items():
                if not isinstance(entries, list):
                    print(f"⚠️ Skipping corrupted library entry for {root}")
                    continue
                records = [r for r in (_parse_record(e) for e in entries) if r is not None]
                libraries[root] = records

        return folders, libraries

    def save(self, folders: Dict[str, GameRecord], libraries: Dict[str, List[GameRecord]]) -> None:
        """
        Persists current state to disk using atomic write pattern.
        A crash mid-write leaves the previous file intact.
        """
        if not self.cache_file:
            return

        dump_data = {
            "folders": {path: r.model_dump(by_alias=True, mode="json") for path, r in folders.items()},
            "libraries": {
                root: [r.model_dump(by_alias=True, mode="json") for r in records]
                for root, records in libraries.items()
            },
        }

        cache_dir = os.path.dirname(self.cache_file) or "."
        try:
            os.makedirs(cache_dir, exist_ok=True)
            # Temp file in the same directory keeps the final rename on one filesystem
            temp_fd, temp_path = tempfile.mkstemp(dir=cache_dir, prefix=".cache_tmp_", suffix=".json")
        except OSError as e:
            print(f"❌ Error saving cache: {e}")
            return

        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(dump_data, f, indent=2, ensure_ascii=False)
            shutil.move(temp_path, self.cache_file)
            print(f"✅ Cache saved ({len(folders)} folders, {len(libraries)} libraries)")
        except OSError as e:
            print(f"❌ Error saving cache: {e}")
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass


def _parse_record(entry_dict, key: Optional[str] = None) -> Optional[GameRecord]:
    if not isinstance(entry_dict, dict):
        print(f"⚠️ Skipping corrupted cache entry for {key}")
        return None
    # Preserve the key as folder path if missing in body
    if key and "folderPath" not in entry_dict and "folder_path" not in entry_dict:
        entry_dict = dict(entry_dict, folderPath=key)
    try:
        return GameRecord(**entry_dict)
    except ValueError as e:
        print(f"⚠️ Skipping corrupted cache entry for {key or entry_dict.get('folderPath')}: {e}")
        return None
