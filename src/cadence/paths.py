"""Centralised path constants, parameterized by root directory.

Usage:
    paths = Paths(root=Path("data"))          # production
    paths = Paths(root=tmp_path / "data")     # tests
"""

from pathlib import Path


class Paths:
    """All cadence data paths derived from a single root directory."""

    def __init__(self, root: Path | str = Path("data")) -> None:
        self.root = Path(root)

    @property
    def db(self) -> Path:
        return self.root / "cadence.db"

    @property
    def config_dir(self) -> Path:
        return self.root / "config"

    @property
    def settings_file(self) -> Path:
        return self.config_dir / "settings.json"
