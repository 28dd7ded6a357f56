"""
Tests for the settings layer.
"""
import json

from rpg_library.config import DEFAULT_SETTINGS_JSON, ConfigManager


def test_missing_defaults_are_merged_back_into_file(tmp_path):
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps({"library_path": "/games", "web_width": 1024}), encoding="utf-8")

    config = ConfigManager(data_dir=str(tmp_path))

    assert config.settings.library_path == "/games"
    assert config.settings.web_width == 1024
    assert config.settings.web_height == 624
    saved = json.loads(settings_file.read_text(encoding="utf-8"))
    assert "_comment_library_path" in saved
    assert saved["web_width"] == 1024


def test_save_updates_settings_and_keeps_comments(tmp_path):
    config = ConfigManager(data_dir=str(tmp_path))

    assert config.save({"cleanup_pace_ms": 0, "recursive_scan": True})

    assert config.settings.recursive_scan is True
    assert config.cleanup_pace == 0
    saved = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))
    assert saved["_comment_cleanup_pace_ms"] == DEFAULT_SETTINGS_JSON["_comment_cleanup_pace_ms"]


def test_unreadable_settings_fall_back_to_defaults(tmp_path):
    (tmp_path / "settings.json").write_text("{ nope", encoding="utf-8")

    config = ConfigManager(data_dir=str(tmp_path))

    assert config.settings.cleanup_pace_ms == 50
    assert config.cache_file.endswith("library_cache.json")


def test_data_dir_is_created(tmp_path):
    target = tmp_path / "nested" / "data"

    ConfigManager(data_dir=str(target))

    assert target.is_dir()
