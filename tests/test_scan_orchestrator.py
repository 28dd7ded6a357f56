"""
Tests for ScanOrchestrator flat and recursive scans.
"""
import pytest

from memory_fs import LIB, make_web_game
from rpg_library.errors import LibraryRootError
from rpg_library.models.game_record import EngineType
from rpg_library.scanner.manager import ScanOrchestrator


@pytest.fixture
def orchestrator(fs, state):
    return ScanOrchestrator(fs, state)


@pytest.mark.asyncio
async def test_flat_scan_finds_direct_children_in_name_order(fs, orchestrator):
    make_web_game(fs, f"{LIB}/beta", title="Beta")
    make_web_game(fs, f"{LIB}/Alpha", title="Alpha", runtime=())
    fs.add_file(f"{LIB}/notes.txt")
    fs.add_file(f"{LIB}/Empty/readme.txt")

    games = await orchestrator.scan_library(LIB)

    assert [g.title for g in games] == ["Alpha", "Beta"]
    assert [g.is_slim for g in games] == [True, False]
    assert games[0].window_config.width == 1280


@pytest.mark.asyncio
async def test_flat_scan_does_not_descend(fs, orchestrator):
    make_web_game(fs, f"{LIB}/Collection/Inner", title="Inner")

    assert await orchestrator.scan_library(LIB) == []


@pytest.mark.asyncio
async def test_recursive_scan_stops_at_games_and_depth(fs, orchestrator):
    make_web_game(fs, f"{LIB}/Series/Part 1", title="Part 1")
    make_web_game(fs, f"{LIB}/A/B/C/TooDeep", title="Too Deep")
    make_web_game(fs, f"{LIB}/A/B/Found", title="Found")
    # A game's own subfolders are not games
    make_web_game(fs, f"{LIB}/Series/Part 1/extras/Bonus", title="Bonus")

    games = await orchestrator.scan_library(LIB, recursive=True)

    assert sorted(g.title for g in games) == ["Found", "Part 1"]


@pytest.mark.asyncio
async def test_recursive_scan_skips_ignored_and_unreadable_folders(fs, orchestrator):
    make_web_game(fs, f"{LIB}/img/Hidden", title="Hidden")
    make_web_game(fs, f"{LIB}/Locked/Inside", title="Inside")
    make_web_game(fs, f"{LIB}/Open/Visible", title="Visible")
    fs.unreadable.add(f"{LIB}/Locked")

    games = await orchestrator.scan_library(LIB, recursive=True)

    assert [g.title for g in games] == ["Visible"]


@pytest.mark.asyncio
async def test_unreadable_root_raises(fs, orchestrator):
    fs.add_dir(LIB)
    fs.unreadable.add(LIB)

    with pytest.raises(LibraryRootError):
        await orchestrator.scan_library(LIB)


@pytest.mark.asyncio
async def test_missing_root_raises(orchestrator):
    with pytest.raises(LibraryRootError):
        await orchestrator.scan_library("/nowhere")


@pytest.mark.asyncio
async def test_cached_records_are_reused_until_forced(fs, state, orchestrator):
    make_web_game(fs, f"{LIB}/Game", title="Before")
    await orchestrator.scan_library(LIB)

    fs.add_file(f"{LIB}/Game/data/System.json", b'{"gameTitle": "After"}')

    games = await orchestrator.scan_library(LIB)
    assert games[0].title == "Before"

    games = await orchestrator.scan_library(LIB, force=True)
    assert games[0].title == "After"


@pytest.mark.asyncio
async def test_deleted_folder_drops_out_of_next_scan(fs, orchestrator):
    make_web_game(fs, f"{LIB}/Game", title="Game")
    await orchestrator.scan_library(LIB)

    await fs.remove(f"{LIB}/Game")

    assert await orchestrator.scan_library(LIB) == []


@pytest.mark.asyncio
async def test_scan_stores_library_snapshot(fs, orchestrator):
    make_web_game(fs, f"{LIB}/Game", title="Game")

    await orchestrator.scan_library(LIB)

    assert [g.title for g in orchestrator.load_library(LIB)] == ["Game"]


@pytest.mark.asyncio
async def test_busy_folder_is_skipped(fs, state, orchestrator):
    make_web_game(fs, f"{LIB}/Game", title="Game")
    state.busy.try_acquire(f"{LIB}/Game")

    assert await orchestrator.scan_library(LIB) == []
    assert state.busy.is_busy(f"{LIB}/Game")


@pytest.mark.asyncio
async def test_progress_callback_reports_each_game(fs, orchestrator):
    make_web_game(fs, f"{LIB}/Game", title="Game", runtime=())
    messages = []

    await orchestrator.scan_library(LIB, progress_callback=messages.append)

    assert messages == ["Found Game (web) [SLIM]"]


@pytest.mark.asyncio
async def test_legacy_game_is_always_slim(fs, orchestrator):
    fs.add_file(f"{LIB}/Old/RPG_RT.exe")
    fs.add_file(f"{LIB}/Old/nw.dll")

    games = await orchestrator.scan_library(LIB)

    assert games[0].engine_type == EngineType.LEGACY
    assert games[0].is_slim is True
