"""Settings system backed by JSON file, class-based."""

from __future__ import annotations

import json
from typing import Any

from ..paths import Paths

RECURRENCE_WINDOW_MONTHS = 6
HISTORY_LIMIT = 20

DEFAULTS: dict[str, Any] = {
    "window_months": RECURRENCE_WINDOW_MONTHS,
    "history_limit": HISTORY_LIMIT,
}


class Settings:
    """Settings backed by a JSON file.

    Usage:
        settings = Settings(paths)
        months = settings.get("window_months")
        settings.set("window_months", 3)
    """

    def __init__(self, paths: Paths) -> None:
        self.paths = paths

    def load(self) -> dict[str, Any]:
        """Read settings from disk, filling missing keys from defaults."""
        settings = dict(DEFAULTS)
        try:
            raw = self.paths.settings_file.read_text(encoding="utf-8")
            stored = json.loads(raw)
        except (FileNotFoundError, json.JSONDecodeError):
            return settings
        if isinstance(stored, dict):
            settings.update(stored)
        return settings

    def save(self, settings: dict[str, Any]) -> None:
        """Write settings to disk."""
        self.paths.settings_file.parent.mkdir(parents=True, exist_ok=True)
        self.paths.settings_file.write_text(
            json.dumps(settings, indent=4) + "\n", encoding="utf-8",
        )

    def get(self, key: str) -> Any:
        """Return a single setting value."""
        return self.load().get(key, DEFAULTS.get(key))

    def set(self, key: str, value: Any) -> None:
        """Update a single setting and persist."""
        settings = self.load()
        settings[key] = value
        self.save(settings)

    def window_months(self) -> int:
        """Rolling window for occurrence generation, falling back to the default."""
        value = self.get("window_months")
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
        return RECURRENCE_WINDOW_MONTHS

    def history_limit(self) -> int:
        value = self.get("history_limit")
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return min(value, HISTORY_LIMIT)
        return HISTORY_LIMIT
