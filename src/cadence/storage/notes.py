"""Note storage: the content attached to annotated events."""

from __future__ import annotations

import uuid
from datetime import datetime

from ..db import Database


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


class NoteStore:
    """Note storage backed by a shared Database instance."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create(self, title: str = "Untitled", body_plain: str = "") -> str:
        """Insert a new note and return its id."""
        now = _now()
        note_id = uuid.uuid4().hex
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT INTO notes (id, title, body_plain, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (note_id, title, body_plain, now, now),
            )
        return note_id

    def get(self, note_id: str) -> dict | None:
        """Return a single note by id, or None."""
        row = self.db.conn.execute(
            "SELECT * FROM notes WHERE id = ?", (note_id,)
        ).fetchone()
        return dict(row) if row else None

    def archive(self, note_id: str) -> bool:
        """Mark a note archived. Archived notes no longer show in series history."""
        now = _now()
        with self.db.transaction() as conn:
            cur = conn.execute(
                "UPDATE notes SET archived_at = ?, updated_at = ? "
                "WHERE id = ? AND archived_at IS NULL",
                (now, now, note_id),
            )
        return cur.rowcount > 0

    def delete(self, note_id: str) -> bool:
        """Delete a note. Linked events keep existing with the link cleared."""
        with self.db.transaction() as conn:
            cur = conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))
        return cur.rowcount > 0
