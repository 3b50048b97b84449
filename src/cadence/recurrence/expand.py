"""Expand a recurrence rule into the calendar dates of its occurrences."""

from __future__ import annotations

import calendar
import math
from datetime import date, datetime, timedelta

from .rules import BiweeklyRule, DailyRule, MonthlyRule, Rule, WeeklyRule, day_index

ONE_DAY = timedelta(days=1)


def add_months(d: date, months: int, day: int | None = None) -> date:
    """Move *d* forward by *months*, clamping to the end of the target month.

    *day* is the day-of-month to aim for (defaults to ``d.day``).
    """
    month = d.month - 1 + months
    year = d.year + month // 12
    month = month % 12 + 1
    max_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day or d.day, max_day))


def _as_date(value: date | datetime | str) -> date:
    if isinstance(value, str):
        if "T" not in value:
            return date.fromisoformat(value)
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return value.date()
    return value


def expand_dates(
    series_start: date | datetime | str,
    rule: Rule,
    from_date: date | str,
    to_date: date | str,
) -> list[date]:
    """Return occurrence dates within [from_date, to_date], in order.

    The series start itself is never included: the root row already fills
    that slot. A datetime *series_start* contributes its own calendar date,
    so callers wanting local dates pass a local datetime.
    """
    start = _as_date(series_start)
    lower = _as_date(from_date)
    end = _as_date(to_date)
    if rule.until is not None and rule.until < end:
        end = rule.until
    max_count = rule.count if rule.count is not None else math.inf

    results: list[date] = []

    if isinstance(rule, DailyRule):
        cur = start + ONE_DAY
        while cur <= end and len(results) < max_count:
            if cur >= lower:
                results.append(cur)
            cur += ONE_DAY

    elif isinstance(rule, WeeklyRule):
        step = timedelta(days=14 if isinstance(rule, BiweeklyRule) else 7)
        if rule.days:
            offsets = sorted({day_index(d) for d in rule.days})
        else:
            offsets = [start.weekday()]

        week = start - timedelta(days=start.weekday())
        while week <= end and len(results) < max_count:
            for offset in offsets:
                candidate = week + timedelta(days=offset)
                if candidate <= start:
                    continue
                if candidate > end:
                    break
                if candidate < lower:
                    continue
                results.append(candidate)
                if len(results) >= max_count:
                    break
            week += step

    elif isinstance(rule, MonthlyRule):
        # Each step clamps against the original day so the 31st comes back.
        n = 1
        cur = add_months(start, n, start.day)
        while cur <= end and len(results) < max_count:
            if cur >= lower:
                results.append(cur)
            n += 1
            cur = add_months(start, n, start.day)

    return results
