from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
# Shared fakes live beside the tests
sys.path.insert(0, str(ROOT / "tests"))

from memory_fs import MemoryFileSystem  # noqa: E402
from rpg_library.core.state import LibraryState  # noqa: E402
from rpg_library.database.metadata_cache import MetadataCache  # noqa: E402


@pytest.fixture
def fs():
    return MemoryFileSystem()


@pytest.fixture
def state(fs):
    return LibraryState(MetadataCache(fs))
