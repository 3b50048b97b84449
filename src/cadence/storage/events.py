"""Calendar event CRUD backed by SQLite.

Series roots and their generated occurrences live in the same table; see
:mod:`cadence.storage.recurrence` for the series-aware operations.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, tzinfo
from typing import Any

from ..db import Database
from ..recurrence.rules import parse_rule, rule_to_json
from ..timestamps import format_timestamp, normalize_timestamp, utc_now

EVENT_COLUMNS = (
    "title",
    "start_at",
    "end_at",
    "attendees",
    "linked_note_id",
    "recurrence_rule",
)


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def encode_fields(fields: dict[str, Any], tz: tzinfo | None = None) -> dict[str, Any]:
    """Convert Python-side field values to their stored column form."""
    encoded = dict(fields)
    for key in ("start_at", "end_at"):
        if encoded.get(key) is not None:
            encoded[key] = normalize_timestamp(encoded[key], tz)
    attendees = encoded.get("attendees")
    if attendees is not None and not isinstance(attendees, str):
        encoded["attendees"] = json.dumps(attendees)
    if encoded.get("recurrence_rule") is not None:
        rule = parse_rule(encoded["recurrence_rule"])
        if rule is None:
            raise ValueError(f"invalid recurrence rule: {encoded['recurrence_rule']!r}")
        encoded["recurrence_rule"] = rule_to_json(rule)
    return encoded


class EventStore:
    """Event storage backed by a shared Database instance."""

    def __init__(self, db: Database, tz: tzinfo | None = None) -> None:
        self.db = db
        self.tz = tz

    def create(
        self,
        title: str,
        start_at: str | datetime,
        end_at: str | datetime,
        attendees: Any = None,
        linked_note_id: str | None = None,
        recurrence_rule: Any = None,
    ) -> int:
        """Insert a new event (a series root when *recurrence_rule* is set)."""
        now = _now()
        fields = encode_fields(
            {
                "title": title,
                "start_at": start_at,
                "end_at": end_at,
                "attendees": attendees if attendees is not None else [],
                "linked_note_id": linked_note_id,
                "recurrence_rule": recurrence_rule,
            },
            self.tz,
        )
        with self.db.transaction() as conn:
            cur = conn.execute(
                "INSERT INTO calendar_events (title, start_at, end_at, attendees, "
                "linked_note_id, recurrence_rule, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    fields["title"], fields["start_at"], fields["end_at"],
                    fields["attendees"], fields["linked_note_id"],
                    fields["recurrence_rule"], now, now,
                ),
            )
        return cur.lastrowid

    def list(self) -> list[dict]:
        """Return all events ordered by start."""
        rows = self.db.conn.execute(
            "SELECT * FROM calendar_events ORDER BY start_at, id",
        ).fetchall()
        return [dict(r) for r in rows]

    def get(self, event_id: int) -> dict | None:
        """Return a single event by id, or None."""
        row = self.db.conn.execute(
            "SELECT * FROM calendar_events WHERE id = ?", (event_id,),
        ).fetchone()
        return dict(row) if row else None

    def series(self, series_id: int) -> list[dict]:
        """Return the root and every occurrence of a series, ordered by start."""
        rows = self.db.conn.execute(
            "SELECT * FROM calendar_events "
            "WHERE id = ? OR recurrence_series_id = ? "
            "ORDER BY start_at, id",
            (series_id, series_id),
        ).fetchall()
        return [dict(r) for r in rows]

    def update(self, event_id: int, **fields) -> bool:
        """Update event fields. Returns True if a row was updated."""
        if not fields:
            return False
        unknown = set(fields) - set(EVENT_COLUMNS)
        if unknown:
            raise ValueError(f"unknown event fields: {sorted(unknown)}")
        fields = encode_fields(fields, self.tz)
        fields["updated_at"] = _now()
        set_clause = ", ".join(f"{k} = ?" for k in fields)
        values = list(fields.values()) + [event_id]
        with self.db.transaction() as conn:
            cur = conn.execute(
                f"UPDATE calendar_events SET {set_clause} WHERE id = ?", values,
            )
        return cur.rowcount > 0

    def delete(self, event_id: int) -> bool:
        """Delete a single event row, without touching the rest of its series."""
        with self.db.transaction() as conn:
            cur = conn.execute("DELETE FROM calendar_events WHERE id = ?", (event_id,))
        return cur.rowcount > 0

    def get_upcoming(self, days: int = 7, limit: int = 10) -> list[dict]:
        """Return events starting within the next *days* days.

        Recurring series are already materialized as occurrence rows, so
        this is a plain range query.
        """
        now = utc_now()
        rows = self.db.conn.execute(
            "SELECT * FROM calendar_events "
            "WHERE start_at >= ? AND start_at <= ? "
            "ORDER BY start_at, id LIMIT ?",
            (format_timestamp(now), format_timestamp(now + timedelta(days=days)), limit),
        ).fetchall()
        return [dict(r) for r in rows]
