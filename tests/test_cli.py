"""
Tests for the rpg-library command line.
"""
import shutil

import pytest

from rpg_library import main as cli
from rpg_library.config import ConfigManager
from rpg_library.scanner import file_system


@pytest.fixture
def config(tmp_path, monkeypatch):
    cfg = ConfigManager(data_dir=str(tmp_path / "data"))
    cfg.save({"cleanup_pace_ms": 0})
    monkeypatch.setattr(cli, "get_config", lambda: cfg)
    monkeypatch.setattr(file_system, "send2trash", shutil.rmtree)
    return cfg


@pytest.fixture
def library(tmp_path):
    game = tmp_path / "library" / "Game"
    (game / "js").mkdir(parents=True)
    (game / "index.html").write_text("<html></html>", encoding="utf-8")
    (game / "js" / "rmmz_core.js").write_text("//", encoding="utf-8")
    (game / "nw.exe").write_bytes(b"MZ")
    return tmp_path / "library"


def test_scan_prints_games(config, library, capsys):
    assert cli.main(["scan", str(library)]) == 0

    out = capsys.readouterr().out
    assert "Game | web | bundled runtime" in out


def test_scan_of_missing_root_exits_with_error(config, tmp_path, capsys):
    assert cli.main(["scan", str(tmp_path / "missing")]) == 1

    assert "Cannot read library root" in capsys.readouterr().out


def test_clean_with_yes_removes_runtime(config, library):
    assert cli.main(["clean", str(library / "Game"), "--yes"]) == 0

    assert not (library / "Game" / "nw.exe").exists()
    assert (library / "Game" / "index.html").exists()


def test_clean_declined_changes_nothing(config, library, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda _prompt: "n")

    assert cli.main(["clean", str(library / "Game")]) == 0

    assert (library / "Game" / "nw.exe").exists()


def test_slim_all_writes_cleanup_log(config, library):
    assert cli.main(["slim-all", str(library), "--yes"]) == 0

    assert not (library / "Game" / "nw.exe").exists()
    with open(config.cleanup_log_file, encoding="utf-8") as f:
        assert "1 cleaned" in f.read()


def test_scan_defaults_to_library_path_setting(config, library, capsys):
    config.save({"library_path": str(library)})

    assert cli.main(["scan"]) == 0

    assert "Game | web | bundled runtime" in capsys.readouterr().out


def test_scan_without_root_or_setting_exits_with_usage_error(config, capsys):
    assert cli.main(["scan"]) == 2

    assert "library_path is not set" in capsys.readouterr().out
