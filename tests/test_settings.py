"""Tests for cadence.storage.settings."""

import pytest

from cadence.paths import Paths
from cadence.storage.settings import (
    HISTORY_LIMIT,
    RECURRENCE_WINDOW_MONTHS,
    Settings,
)


@pytest.fixture
def paths(tmp_path):
    return Paths(root=tmp_path / "data")


@pytest.fixture
def settings(paths):
    return Settings(paths)


class TestSettings:
    def test_load_defaults(self, settings):
        s = settings.load()
        assert s["window_months"] == RECURRENCE_WINDOW_MONTHS
        assert s["history_limit"] == HISTORY_LIMIT

    def test_save_and_load(self, settings):
        settings.set("window_months", 3)
        assert settings.get("window_months") == 3

    def test_get_missing_key(self, settings):
        assert settings.get("nonexistent") is None

    def test_malformed_file_falls_back(self, settings, paths):
        paths.settings_file.parent.mkdir(parents=True)
        paths.settings_file.write_text("{not json", encoding="utf-8")
        assert settings.load()["window_months"] == RECURRENCE_WINDOW_MONTHS

    def test_non_object_file_falls_back(self, settings, paths):
        paths.settings_file.parent.mkdir(parents=True)
        paths.settings_file.write_text("[1, 2]", encoding="utf-8")
        assert settings.window_months() == RECURRENCE_WINDOW_MONTHS


class TestResolvedValues:
    def test_window_months(self, settings):
        settings.set("window_months", 2)
        assert settings.window_months() == 2

    def test_bad_window_uses_default(self, settings):
        settings.set("window_months", 0)
        assert settings.window_months() == RECURRENCE_WINDOW_MONTHS
        settings.set("window_months", "6")
        assert settings.window_months() == RECURRENCE_WINDOW_MONTHS

    def test_history_limit_capped(self, settings):
        settings.set("history_limit", 50)
        assert settings.history_limit() == HISTORY_LIMIT
        settings.set("history_limit", 5)
        assert settings.history_limit() == 5
