"""Tests for environment-driven settings and store selection."""

import pytest

from src.config import DEFAULT_DATA_DIR, load_settings, make_store
from src.store.backends import HttpDocumentStore, JsonFileStore

NAV_VARS = [
    "NAV_STORE_URL",
    "NAV_DATA_DIR",
    "NAV_WINDOW_SIZE",
    "NAV_PROXIMITY_THRESHOLD",
    "NAV_FLOOR_OFFSET",
    "NAV_PLACEMENT_DISTANCE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so teardown also removes values loaded from .env files
    for name in NAV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults(tmp_path):
    settings = load_settings(str(tmp_path / ".env"))

    assert settings.store_url is None
    assert settings.data_dir == DEFAULT_DATA_DIR
    assert settings.window_size == 3
    assert settings.proximity_threshold == 2.0
    assert settings.floor_offset == 0.05


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("NAV_WINDOW_SIZE", "4")
    monkeypatch.setenv("NAV_PROXIMITY_THRESHOLD", "1.5")
    monkeypatch.setenv("NAV_DATA_DIR", str(tmp_path))

    settings = load_settings(str(tmp_path / ".env"))

    assert settings.window_size == 4
    assert settings.proximity_threshold == 1.5
    assert settings.data_dir == str(tmp_path)


def test_env_file_is_read(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("NAV_STORE_URL=http://nav.test:3000\n")

    settings = load_settings(str(env_file))

    assert settings.store_url == "http://nav.test:3000"


def test_invalid_number_falls_back(monkeypatch, tmp_path):
    monkeypatch.setenv("NAV_FLOOR_OFFSET", "low")
    assert load_settings(str(tmp_path / ".env")).floor_offset == 0.05


@pytest.mark.asyncio
async def test_make_store_picks_backend(tmp_path):
    settings = load_settings(str(tmp_path / ".env"))
    assert isinstance(make_store(settings), JsonFileStore)

    settings.store_url = "http://nav.test"
    store = make_store(settings)
    assert isinstance(store, HttpDocumentStore)
    await store.close()
