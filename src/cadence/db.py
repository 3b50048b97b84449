"""SQLite database setup and connection, class-based."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS notes (
    id          TEXT PRIMARY KEY,
    title       TEXT NOT NULL DEFAULT 'Untitled',
    body_plain  TEXT NOT NULL DEFAULT '',
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,
    archived_at TEXT
);

CREATE TABLE IF NOT EXISTS calendar_events (
    id                       INTEGER PRIMARY KEY AUTOINCREMENT,
    title                    TEXT NOT NULL,
    start_at                 TEXT NOT NULL,
    end_at                   TEXT NOT NULL,
    attendees                TEXT NOT NULL DEFAULT '[]',
    linked_note_id           TEXT REFERENCES notes(id) ON DELETE SET NULL,
    recurrence_rule          TEXT,
    recurrence_series_id     INTEGER,
    recurrence_instance_date TEXT,
    created_at               TEXT NOT NULL,
    updated_at               TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_calendar_events_series
    ON calendar_events(recurrence_series_id);

CREATE UNIQUE INDEX IF NOT EXISTS idx_calendar_events_instance
    ON calendar_events(recurrence_series_id, recurrence_instance_date);

CREATE TABLE IF NOT EXISTS recurrence_exceptions (
    series_id     INTEGER NOT NULL REFERENCES calendar_events(id) ON DELETE CASCADE,
    instance_date TEXT NOT NULL,
    PRIMARY KEY (series_id, instance_date)
);
"""

CURRENT_SCHEMA_VERSION = 1


class Database:
    """SQLite database wrapper.

    Usage:
        db = Database(paths.db)
        db.connect()
        db.init_schema()
        with db.transaction():
            ...
        db.close()
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._conn: sqlite3.Connection | None = None
        self._depth = 0

    def connect(self) -> None:
        """Open the database connection, creating the file if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.path))
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.row_factory = sqlite3.Row

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("call connect() first")
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Group writes so they land together or not at all.

        Nested blocks join the outermost one; only it commits or rolls back.
        """
        conn = self.conn
        self._depth += 1
        try:
            yield conn
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                conn.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            conn.commit()

    def init_schema(self) -> None:
        """Create all tables if they don't exist and record schema version."""
        self.conn.executescript(_SCHEMA)
        row = self.conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()
        if row[0] == 0:
            self.conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (CURRENT_SCHEMA_VERSION,),
            )
        self.conn.commit()

    @property
    def schema_version(self) -> int:
        row = self.conn.execute("SELECT version FROM schema_version").fetchone()
        return row[0] if row else 0

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
