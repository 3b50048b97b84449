"""Tests for cadence.main."""

from datetime import datetime, timedelta, timezone

from cadence.db import Database
from cadence.main import main
from cadence.paths import Paths
from cadence.storage.events import EventStore


class TestDescribe:
    def test_prints_description(self, capsys):
        assert main(["describe", '{"freq": "weekly", "days": ["mon", "wed"]}']) == 0
        assert capsys.readouterr().out.strip() == "Weekly on Mon, Wed"

    def test_invalid_rule(self, capsys):
        assert main(["describe", '{"freq": "hourly"}']) == 1
        assert "invalid rule" in capsys.readouterr().err


class TestExpand:
    def test_prints_dates(self, capsys):
        code = main([
            "expand", "--start", "2024-01-31", "--rule", '{"freq": "monthly"}',
            "--from", "2024-01-31", "--to", "2024-05-01",
        ])
        assert code == 0
        assert capsys.readouterr().out.split() == ["2024-02-29", "2024-03-31", "2024-04-30"]


class TestExtend:
    def test_generates_for_every_root(self, tmp_path, capsys):
        paths = Paths(tmp_path / "data")
        db = Database(paths.db)
        db.connect()
        db.init_schema()
        start = datetime.now(timezone.utc).replace(microsecond=0)
        root = EventStore(db).create(
            "Standup", start, start + timedelta(minutes=15),
            recurrence_rule={"freq": "daily", "count": 2},
        )
        db.close()

        assert main(["--data-dir", str(paths.root), "extend", "--months", "1"]) == 0
        assert "extended 1 series" in capsys.readouterr().out

        db.connect()
        rows = EventStore(db).series(root)
        db.close()
        assert len(rows) == 3
