"""Recurrence rule values: parsing, serialization and descriptions.

A rule is one of four frozen dataclasses. Only the weekly variants carry
``days``; the JSON shape stored on a series root is a flat object:

    {"freq": "weekly", "days": ["mon", "fri"], "until": "2024-06-30"}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Union

log = logging.getLogger(__name__)

# Monday-first, matching date.weekday().
WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

FREQUENCIES = ("daily", "weekly", "biweekly", "monthly")


def day_abbr(index: int) -> str:
    """Return the abbreviation for a weekday index (Mon=0)."""
    return WEEKDAYS[index % 7]


def day_index(abbr: str) -> int:
    """Return the weekday index (Mon=0) for an abbreviation."""
    return WEEKDAYS.index(abbr)


@dataclass(frozen=True)
class _RuleBase:
    until: date | None = None
    count: int | None = None

    freq = ""

    def __post_init__(self) -> None:
        if self.count is not None and (
            isinstance(self.count, bool) or not isinstance(self.count, int) or self.count < 1
        ):
            raise ValueError(f"count must be a positive integer, got {self.count!r}")

    def capped(self, until: date) -> Rule:
        """Return a copy that ends on *until* and has no count."""
        return replace(self, until=until, count=None)


@dataclass(frozen=True)
class DailyRule(_RuleBase):
    freq = "daily"


@dataclass(frozen=True)
class MonthlyRule(_RuleBase):
    freq = "monthly"


@dataclass(frozen=True)
class WeeklyRule(_RuleBase):
    days: tuple[str, ...] = ()

    freq = "weekly"

    def __post_init__(self) -> None:
        super().__post_init__()
        # Normalize lists passed by callers so the rule stays hashable.
        object.__setattr__(self, "days", tuple(self.days))
        for d in self.days:
            if d not in WEEKDAYS:
                raise ValueError(f"unknown weekday: {d!r}")


@dataclass(frozen=True)
class BiweeklyRule(WeeklyRule):
    freq = "biweekly"


Rule = Union[DailyRule, WeeklyRule, BiweeklyRule, MonthlyRule]

_RULE_TYPES: dict[str, type] = {
    "daily": DailyRule,
    "weekly": WeeklyRule,
    "biweekly": BiweeklyRule,
    "monthly": MonthlyRule,
}


def parse_rule(raw: Any) -> Rule | None:
    """Parse a stored rule value. Returns None if it is not a valid rule.

    *raw* may be a JSON string (or bytes), a decoded mapping, or a rule
    object, which is returned unchanged.
    """
    if isinstance(raw, _RuleBase):
        return raw
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError):
            log.debug("unparseable recurrence rule: %r", raw)
            return None
    if not isinstance(raw, dict):
        return None

    freq = raw.get("freq")
    rule_type = _RULE_TYPES.get(freq) if isinstance(freq, str) else None
    if rule_type is None:
        return None

    kwargs: dict[str, Any] = {}
    until = raw.get("until")
    if until is not None:
        if not isinstance(until, str):
            return None
        try:
            kwargs["until"] = date.fromisoformat(until)
        except ValueError:
            return None
    if raw.get("count") is not None:
        kwargs["count"] = raw["count"]

    days = raw.get("days")
    if days is not None and issubclass(rule_type, WeeklyRule):
        if not isinstance(days, list):
            return None
        kwargs["days"] = tuple(days)

    try:
        return rule_type(**kwargs)
    except (TypeError, ValueError):
        return None


def rule_to_dict(rule: Rule) -> dict[str, Any]:
    """Flatten a rule into its stored shape."""
    data: dict[str, Any] = {"freq": rule.freq}
    if isinstance(rule, WeeklyRule) and rule.days:
        data["days"] = list(rule.days)
    if rule.until is not None:
        data["until"] = rule.until.isoformat()
    if rule.count is not None:
        data["count"] = rule.count
    return data


def rule_to_json(rule: Rule) -> str:
    return json.dumps(rule_to_dict(rule), separators=(",", ":"))


def describe_rule(rule: Rule) -> str:
    """Describe a rule in English, e.g. ``"Weekly on Mon, Wed"``."""
    days = None
    if isinstance(rule, WeeklyRule) and rule.days:
        days = ", ".join(d.capitalize() for d in rule.days)

    match rule.freq:
        case "daily":
            return "Daily"
        case "weekly":
            return f"Weekly on {days}" if days else "Weekly"
        case "biweekly":
            return f"Every 2 weeks on {days}" if days else "Every 2 weeks"
        case "monthly":
            return "Monthly"
    raise ValueError(f"unknown frequency: {rule.freq!r}")
