"""Recurrence rules and date expansion. Pure functions, no storage."""

from .expand import add_months, expand_dates
from .rules import (
    BiweeklyRule,
    DailyRule,
    MonthlyRule,
    Rule,
    WEEKDAYS,
    WeeklyRule,
    day_abbr,
    describe_rule,
    parse_rule,
    rule_to_dict,
    rule_to_json,
)

__all__ = [
    "BiweeklyRule",
    "DailyRule",
    "MonthlyRule",
    "Rule",
    "WEEKDAYS",
    "WeeklyRule",
    "add_months",
    "day_abbr",
    "describe_rule",
    "expand_dates",
    "parse_rule",
    "rule_to_dict",
    "rule_to_json",
]
