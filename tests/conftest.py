from collections.abc import Iterator
from pathlib import Path

import pytest

from ccrag.config import get_settings


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def corpus(tmp_path: Path) -> dict[str, Path]:
    source_dir = tmp_path / "notes"
    source_dir.mkdir()
    alice = source_dir / "alice.txt"
    bob = source_dir / "bob.txt"
    alice.write_text("the cat sat", encoding="utf-8")
    bob.write_text("the dog ran", encoding="utf-8")
    return {"alice": alice, "bob": bob}
