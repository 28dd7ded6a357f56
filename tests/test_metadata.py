"""
Tests for MetadataExtractor title resolution and folder-name parsing.
"""
import codecs

import pytest

from memory_fs import LIB
from rpg_library.models.game_record import Classification, EngineType
from rpg_library.scanner.metadata import (
    MetadataExtractor,
    clean_folder_title,
    decode_config_text,
    extract_product_code,
)

WEB_ROOT = Classification(engine_type=EngineType.WEB, entry_point="index.html")
WEB_NESTED = Classification(engine_type=EngineType.WEB, entry_point="www/index.html")
TYRANO = Classification(engine_type=EngineType.TYRANO, entry_point="index.html")
LEGACY = Classification(engine_type=EngineType.LEGACY, entry_point="Game.exe")


@pytest.fixture
def extractor(fs):
    return MetadataExtractor(fs)


@pytest.mark.asyncio
async def test_system_json_title_wins(fs, extractor):
    folder = f"{LIB}/Quest [RJ123456]"
    fs.add_file(f"{folder}/data/System.json", '{"gameTitle": "  Dragon Quest  "}'.encode())
    fs.add_file(f"{folder}/package.json", b'{"name": "quest-package"}')

    record = await extractor.extract(folder, "Quest [RJ123456]", WEB_ROOT)

    assert record.title == "Dragon Quest"
    assert record.external_id == "RJ123456"
    assert record.engine_type == EngineType.WEB


@pytest.mark.asyncio
async def test_system_json_beside_nested_entry(fs, extractor):
    folder = f"{LIB}/Nested"
    fs.add_file(f"{folder}/www/data/System.json", '{"gameTitle": "Inner"}'.encode())

    record = await extractor.extract(folder, "Nested", WEB_NESTED)

    assert record.title == "Inner"


@pytest.mark.asyncio
async def test_package_name_used_when_system_json_is_broken(fs, extractor):
    folder = f"{LIB}/Broken"
    fs.add_file(f"{folder}/data/System.json", b"{not json")
    fs.add_file(f"{folder}/package.json", b'{"name": "Real Name"}')

    record = await extractor.extract(folder, "Broken", WEB_ROOT)

    assert record.title == "Real Name"


@pytest.mark.asyncio
@pytest.mark.parametrize("placeholder", ["rmmz-game", "RPG-MAKER-MV", "rmmv-game", "Game"])
async def test_placeholder_package_names_fall_back_to_folder(fs, extractor, placeholder):
    folder = f"{LIB}/MyGame [RJ123456]"
    fs.add_file(f"{folder}/package.json", ('{"name": "%s"}' % placeholder).encode())

    record = await extractor.extract(folder, "MyGame [RJ123456]", WEB_ROOT)

    assert record.title == "MyGame"


@pytest.mark.asyncio
async def test_window_config_kept_even_when_title_comes_from_system_json(fs, extractor):
    folder = f"{LIB}/Sized"
    fs.add_file(f"{folder}/data/System.json", '{"gameTitle": "Sized"}'.encode())
    fs.add_file(
        f"{folder}/package.json",
        b'{"name": "rmmz-game", "window": {"width": 1280, "height": 720, "fullscreen": true}}',
    )

    record = await extractor.extract(folder, "Sized", WEB_ROOT)

    assert record.window_config.width == 1280
    assert record.window_config.height == 720
    assert record.window_config.fullscreen is True


@pytest.mark.asyncio
async def test_tyrano_title_from_config_tjs_utf16(fs, extractor):
    folder = f"{LIB}/Novel"
    text = ';System.title = "Night Train";\n'
    fs.add_file(f"{folder}/data/system/Config.tjs", codecs.BOM_UTF16_LE + text.encode("utf-16-le"))

    record = await extractor.extract(folder, "Novel", TYRANO)

    assert record.title == "Night Train"
    assert record.engine_type == EngineType.TYRANO


@pytest.mark.asyncio
async def test_legacy_uses_folder_name(fs, extractor):
    folder = f"{LIB}/Old Game [VJ012345]"
    fs.add_file(f"{folder}/Game.exe")

    record = await extractor.extract(folder, "Old Game [VJ012345]", LEGACY)

    assert record.title == "Old Game"
    assert record.external_id == "VJ012345"
    assert record.window_config is None


@pytest.mark.asyncio
async def test_icon_candidates_in_order(fs, extractor):
    folder = f"{LIB}/Iconic"
    fs.add_file(f"{folder}/icon/icon.png")
    fs.add_file(f"{folder}/www/icon.png")

    record = await extractor.extract(folder, "Iconic", WEB_ROOT)

    assert record.icon_path == f"{folder}/www/icon.png"


@pytest.mark.asyncio
async def test_unreadable_config_falls_through(fs, extractor):
    folder = f"{LIB}/Locked"
    fs.add_file(f"{folder}/data/System.json", '{"gameTitle": "Hidden"}'.encode())
    fs.fail_read.add("System.json")

    record = await extractor.extract(folder, "Locked", WEB_ROOT)

    assert record.title == "Locked"


def test_clean_folder_title_strips_codes_and_whitespace():
    assert clean_folder_title("MyGame [RJ123456]") == "MyGame"
    assert clean_folder_title("[RJ01234567]  Two   Words ") == "Two Words"
    assert clean_folder_title("[RJ123456]") == "[RJ123456]"


def test_extract_product_code():
    assert extract_product_code("rj123456 Some Game") == "RJ123456"
    assert extract_product_code("Some Game") is None
    assert extract_product_code("ARJ123456") is None


def test_decode_config_text_handles_utf8_bom():
    assert decode_config_text(codecs.BOM_UTF8 + "héllo".encode("utf-8")) == "héllo"


@pytest.mark.asyncio
async def test_www_package_name_used_when_root_name_is_placeholder(fs, extractor):
    folder = f"{LIB}/Split"
    fs.add_file(f"{folder}/package.json", b'{"name": "rmmz-game", "window": {"width": 1280}}')
    fs.add_file(f"{folder}/www/package.json", b'{"name": "Real Title", "window": {"width": 640}}')

    record = await extractor.extract(folder, "Split", WEB_ROOT)

    assert record.title == "Real Title"
    assert record.window_config.width == 1280
