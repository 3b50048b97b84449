"""Recurring series: occurrence generation, scoped edits and history.

Concepts:
    Series root  -- the event row carrying ``recurrence_rule``. It is the
                    first occurrence on the calendar and has no
                    ``recurrence_series_id`` of its own.
    Occurrence   -- a generated row for one instance of the series, with
                    ``recurrence_series_id = root.id`` and
                    ``recurrence_instance_date = 'YYYY-MM-DD'``.
    Annotated    -- a row with ``linked_note_id`` set. Generation never
                    touches it and bulk updates skip it.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Any, Callable

from ..db import Database
from ..recurrence.expand import add_months, expand_dates
from ..recurrence.rules import parse_rule, rule_to_json
from ..timestamps import (
    at_local_time,
    format_timestamp,
    parse_timestamp,
    to_local,
    utc_now,
)
from .events import EVENT_COLUMNS, encode_fields
from .settings import HISTORY_LIMIT, RECURRENCE_WINDOW_MONTHS, Settings

log = logging.getLogger(__name__)

# Never written through a scoped update: identity and series linkage.
STRIPPED_FIELDS = frozenset({"id", "recurrence_series_id", "recurrence_instance_date"})

EXCERPT_CHARS = 120


class Scope(str, Enum):
    THIS = "this"
    FUTURE = "future"
    ALL = "all"


@dataclass
class SeriesOccurrence:
    """One past row of a series and the note attached to it, if any."""

    event_id: int
    event_date: str
    note_id: str | None
    note_title: str | None
    excerpt: str | None


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _set_clause(fields: dict[str, Any]) -> tuple[str, list[Any]]:
    return ", ".join(f"{k} = ?" for k in fields), list(fields.values())


class RecurrenceStore:
    """Series-aware operations over the calendar_events table.

    *tz* is the zone whose wall-clock time occurrences keep (the host zone
    when None). *clock* returns the current aware datetime.
    """

    def __init__(
        self,
        db: Database,
        settings: Settings | None = None,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.tz = tz
        self._clock = clock or utc_now

    def _get(self, event_id: int) -> sqlite3.Row | None:
        return self.db.conn.execute(
            "SELECT * FROM calendar_events WHERE id = ?", (event_id,),
        ).fetchone()

    def _now_stamp(self) -> str:
        return format_timestamp(self._clock())

    def _today(self) -> date:
        return self._clock().astimezone(self.tz).date()

    # ── Generation ──────────────────────────────────────────────────

    def generate(self, root_id: int, window_months: int | None = None) -> int:
        """Materialize occurrences of a series up to *window_months* ahead.

        Safe to call repeatedly: an existing (series, instance date) row is
        left alone, so only dates newly inside the window are inserted.
        Returns the number of rows inserted.
        """
        root = self._get(root_id)
        if root is None or not root["recurrence_rule"]:
            return 0
        rule = parse_rule(root["recurrence_rule"])
        if rule is None:
            log.debug("series %s has an invalid rule, skipping", root_id)
            return 0

        if window_months is None:
            window_months = (
                self.settings.window_months() if self.settings else RECURRENCE_WINDOW_MONTHS
            )

        # Decompose the root into local date + local time-of-day.
        local_start = to_local(root["start_at"], self.tz)
        clock_time = local_start.time().replace(microsecond=0)
        duration = parse_timestamp(root["end_at"]) - parse_timestamp(root["start_at"])
        to_date = add_months(self._today(), window_months)

        dates = expand_dates(local_start, rule, local_start.date(), to_date)
        if not dates:
            return 0

        now = _now()
        inserted = 0
        with self.db.transaction() as conn:
            skipped = {
                r[0] for r in conn.execute(
                    "SELECT instance_date FROM recurrence_exceptions WHERE series_id = ?",
                    (root_id,),
                )
            }
            for day in dates:
                key = day.isoformat()
                if key in skipped:
                    continue
                occ_start = at_local_time(day, clock_time, self.tz)
                cur = conn.execute(
                    "INSERT OR IGNORE INTO calendar_events (title, start_at, end_at, "
                    "attendees, recurrence_series_id, recurrence_instance_date, "
                    "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        root["title"],
                        format_timestamp(occ_start),
                        format_timestamp(occ_start + duration),
                        root["attendees"],
                        root_id,
                        key,
                        now,
                        now,
                    ),
                )
                inserted += cur.rowcount
        log.debug(
            "series %s: %d dates expanded through %s, %d inserted",
            root_id, len(dates), to_date, inserted,
        )
        return inserted

    def extend_all(self, window_months: int | None = None) -> int:
        """Run :meth:`generate` for every series root. Returns the root count."""
        rows = self.db.conn.execute(
            "SELECT id FROM calendar_events "
            "WHERE recurrence_rule IS NOT NULL AND recurrence_series_id IS NULL "
            "ORDER BY id",
        ).fetchall()
        for row in rows:
            self.generate(row["id"], window_months)
        log.info("extended %d recurring series", len(rows))
        return len(rows)

    # ── Scoped update ───────────────────────────────────────────────

    def apply_update(
        self, event_id: int, changes: dict[str, Any], scope: Scope | str,
    ) -> None:
        """Apply *changes* to an event and, depending on *scope*, its series.

        this   -- update only this row and detach it from the series.
        future -- update this row, plus later rows of the series that have
                  no linked note.
        all    -- update the root, plus every row of the series that has no
                  linked note. A new recurrence_rule also drops un-annotated
                  future occurrences and regenerates them.

        Raises ValueError, before any write, for an unknown scope, a field
        that is not an event column, or a recurrence_rule that does not parse.
        """
        scope = Scope(scope)
        target = self._get(event_id)
        if target is None:
            return

        safe = {k: v for k, v in changes.items() if k not in STRIPPED_FIELDS}
        if not safe:
            return
        unknown = set(safe) - set(EVENT_COLUMNS)
        if unknown:
            raise ValueError(f"unknown event fields: {sorted(unknown)}")
        safe = encode_fields(safe, self.tz)

        now = _now()
        # Occurrence rows never carry a rule of their own.
        row_fields = {k: v for k, v in safe.items() if k != "recurrence_rule"}
        series_id = target["recurrence_series_id"]
        if series_id is None:
            series_id = target["id"]

        log.debug("update event %s scope=%s fields=%s", event_id, scope.value, sorted(safe))

        if scope is Scope.THIS:
            clause, values = _set_clause({**safe, "updated_at": now})
            with self.db.transaction() as conn:
                conn.execute(
                    f"UPDATE calendar_events SET {clause} WHERE id = ?",
                    values + [event_id],
                )
                if target["recurrence_series_id"] is not None:
                    self._record_exception(
                        conn, target["recurrence_series_id"],
                        target["recurrence_instance_date"],
                    )
                conn.execute(
                    "UPDATE calendar_events "
                    "SET recurrence_series_id = NULL, recurrence_instance_date = NULL "
                    "WHERE id = ?",
                    (event_id,),
                )
            return

        if scope is Scope.FUTURE:
            own = safe if target["recurrence_series_id"] is None else row_fields
            with self.db.transaction() as conn:
                if own:
                    clause, values = _set_clause({**own, "updated_at": now})
                    conn.execute(
                        f"UPDATE calendar_events SET {clause} WHERE id = ?",
                        values + [event_id],
                    )
                if row_fields:
                    clause, values = _set_clause({**row_fields, "updated_at": now})
                    conn.execute(
                        f"UPDATE calendar_events SET {clause} "
                        "WHERE recurrence_series_id = ? AND start_at > ? "
                        "AND linked_note_id IS NULL",
                        values + [series_id, target["start_at"]],
                    )
            return

        rule_changed = "recurrence_rule" in safe
        with self.db.transaction() as conn:
            clause, values = _set_clause({**safe, "updated_at": now})
            conn.execute(
                f"UPDATE calendar_events SET {clause} WHERE id = ?",
                values + [series_id],
            )
            if row_fields:
                clause, values = _set_clause({**row_fields, "updated_at": now})
                conn.execute(
                    f"UPDATE calendar_events SET {clause} "
                    "WHERE recurrence_series_id = ? AND linked_note_id IS NULL",
                    values + [series_id],
                )
            if rule_changed:
                cur = conn.execute(
                    "DELETE FROM calendar_events "
                    "WHERE recurrence_series_id = ? AND start_at > ? "
                    "AND linked_note_id IS NULL",
                    (series_id, self._now_stamp()),
                )
                conn.execute(
                    "DELETE FROM recurrence_exceptions "
                    "WHERE series_id = ? AND instance_date > ?",
                    (series_id, self._today().isoformat()),
                )
                log.debug(
                    "series %s rule changed, dropped %d future occurrences",
                    series_id, cur.rowcount,
                )
                self.generate(series_id)

    # ── Scoped delete ───────────────────────────────────────────────

    def apply_delete(self, event_id: int, scope: Scope | str) -> None:
        """Delete an event and, depending on *scope*, part of its series.

        this   -- delete only this row.
        future -- delete this row and every later row of the series,
                  linked notes or not, then end the root's rule the day
                  before this occurrence.
        all    -- delete every occurrence and the root.
        """
        scope = Scope(scope)
        target = self._get(event_id)
        if target is None:
            return
        series_id = target["recurrence_series_id"]
        if series_id is None:
            series_id = target["id"]

        log.debug("delete event %s scope=%s", event_id, scope.value)

        if scope is Scope.THIS:
            with self.db.transaction() as conn:
                if target["recurrence_series_id"] is not None:
                    self._record_exception(
                        conn, target["recurrence_series_id"],
                        target["recurrence_instance_date"],
                    )
                conn.execute("DELETE FROM calendar_events WHERE id = ?", (event_id,))
            return

        if scope is Scope.FUTURE:
            with self.db.transaction() as conn:
                conn.execute(
                    "DELETE FROM calendar_events "
                    "WHERE (id = ? OR recurrence_series_id = ?) AND start_at >= ?",
                    (event_id, series_id, target["start_at"]),
                )
                root = self._get(series_id)
                rule = parse_rule(root["recurrence_rule"]) if root is not None else None
                if rule is not None:
                    instance = target["recurrence_instance_date"]
                    if instance is None:
                        instance = to_local(target["start_at"], self.tz).date().isoformat()
                    cap = date.fromisoformat(instance) - timedelta(days=1)
                    conn.execute(
                        "UPDATE calendar_events SET recurrence_rule = ?, updated_at = ? "
                        "WHERE id = ?",
                        (rule_to_json(rule.capped(cap)), _now(), series_id),
                    )
            return

        with self.db.transaction() as conn:
            conn.execute(
                "DELETE FROM calendar_events WHERE recurrence_series_id = ?", (series_id,),
            )
            conn.execute("DELETE FROM calendar_events WHERE id = ?", (series_id,))

    @staticmethod
    def _record_exception(
        conn: sqlite3.Connection, series_id: int, instance_date: str | None,
    ) -> None:
        """Remember a date regeneration must not fill again."""
        if instance_date is None:
            return
        conn.execute(
            "INSERT OR IGNORE INTO recurrence_exceptions (series_id, instance_date) "
            "SELECT ?, ? WHERE EXISTS (SELECT 1 FROM calendar_events WHERE id = ?)",
            (series_id, instance_date, series_id),
        )

    # ── History ─────────────────────────────────────────────────────

    def past_occurrences(
        self, series_id: int, limit: int | None = None,
    ) -> list[SeriesOccurrence]:
        """Return past rows of a series (root included), newest first."""
        if limit is None:
            limit = self.settings.history_limit() if self.settings else HISTORY_LIMIT
        limit = max(0, min(limit, HISTORY_LIMIT))
        rows = self.db.conn.execute(
            "SELECT ce.id AS event_id, ce.start_at, ce.recurrence_instance_date, "
            "n.id AS note_id, n.title AS note_title, "
            "substr(n.body_plain, 1, ?) AS excerpt "
            "FROM calendar_events ce "
            "LEFT JOIN notes n ON ce.linked_note_id = n.id AND n.archived_at IS NULL "
            "WHERE (ce.id = ? OR ce.recurrence_series_id = ?) AND ce.start_at < ? "
            "ORDER BY ce.start_at DESC, ce.id DESC LIMIT ?",
            (EXCERPT_CHARS, series_id, series_id, self._now_stamp(), limit),
        ).fetchall()
        return [
            SeriesOccurrence(
                event_id=r["event_id"],
                event_date=(
                    r["recurrence_instance_date"]
                    or to_local(r["start_at"], self.tz).date().isoformat()
                ),
                note_id=r["note_id"],
                note_title=r["note_title"],
                excerpt=r["excerpt"],
            )
            for r in rows
        ]
