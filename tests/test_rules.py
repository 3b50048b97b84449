"""Tests for cadence.recurrence.rules."""

from datetime import date

import pytest

from cadence.recurrence.rules import (
    BiweeklyRule,
    DailyRule,
    MonthlyRule,
    WeeklyRule,
    day_abbr,
    describe_rule,
    parse_rule,
    rule_to_json,
)


class TestParseRule:
    def test_parse_daily(self):
        assert parse_rule('{"freq": "daily"}') == DailyRule()

    def test_parse_weekly_with_days(self):
        rule = parse_rule('{"freq": "weekly", "days": ["mon", "fri"]}')
        assert isinstance(rule, WeeklyRule)
        assert rule.days == ("mon", "fri")

    def test_parse_biweekly_is_weekly_variant(self):
        rule = parse_rule({"freq": "biweekly", "days": ["tue"]})
        assert isinstance(rule, BiweeklyRule)
        assert rule.freq == "biweekly"

    def test_parse_until_and_count(self):
        rule = parse_rule('{"freq": "monthly", "until": "2024-06-30"}')
        assert rule == MonthlyRule(until=date(2024, 6, 30))
        assert parse_rule('{"freq": "daily", "count": 3}').count == 3

    def test_days_ignored_for_daily(self):
        rule = parse_rule('{"freq": "daily", "days": ["mon"]}')
        assert rule == DailyRule()

    def test_rule_object_passes_through(self):
        rule = WeeklyRule(days=("wed",))
        assert parse_rule(rule) is rule

    @pytest.mark.parametrize("raw", [
        "not json",
        "[1, 2]",
        '{"freq": "yearly"}',
        "{}",
        '{"freq": "weekly", "days": ["funday"]}',
        '{"freq": "weekly", "days": "mon"}',
        '{"freq": "daily", "until": "30/06/2024"}',
        '{"freq": "daily", "count": 0}',
        '{"freq": "daily", "count": "3"}',
        None,
        42,
        "[" * 100000 + "]" * 100000,
    ])
    def test_invalid_returns_none(self, raw):
        assert parse_rule(raw) is None


class TestRuleValues:
    def test_constructor_rejects_bad_count(self):
        with pytest.raises(ValueError, match="count"):
            DailyRule(count=-1)

    def test_constructor_rejects_unknown_day(self):
        with pytest.raises(ValueError, match="weekday"):
            WeeklyRule(days=("xyz",))

    def test_days_list_becomes_tuple(self):
        assert WeeklyRule(days=["mon"]).days == ("mon",)

    def test_capped_clears_count(self):
        rule = DailyRule(count=10).capped(date(2024, 3, 1))
        assert rule.until == date(2024, 3, 1)
        assert rule.count is None

    def test_capped_keeps_days(self):
        rule = BiweeklyRule(days=("mon",)).capped(date(2024, 3, 1))
        assert isinstance(rule, BiweeklyRule)
        assert rule.days == ("mon",)

    def test_day_abbr_is_monday_first(self):
        assert day_abbr(0) == "mon"
        assert day_abbr(6) == "sun"


class TestSerialization:
    def test_key_order_and_compact_form(self):
        rule = WeeklyRule(days=("mon", "wed"), until=date(2024, 5, 1))
        assert rule_to_json(rule) == '{"freq":"weekly","days":["mon","wed"],"until":"2024-05-01"}'

    def test_absent_keys_omitted(self):
        assert rule_to_json(DailyRule(count=3)) == '{"freq":"daily","count":3}'
        assert rule_to_json(WeeklyRule()) == '{"freq":"weekly"}'

    def test_parse_reads_what_it_writes(self):
        rule = BiweeklyRule(days=("fri", "mon"), count=4)
        assert parse_rule(rule_to_json(rule)) == rule


class TestDescribeRule:
    def test_daily(self):
        assert describe_rule(DailyRule()) == "Daily"

    def test_weekly_days_keep_given_order(self):
        assert describe_rule(WeeklyRule(days=("wed", "mon"))) == "Weekly on Wed, Mon"

    def test_weekly_without_days(self):
        assert describe_rule(WeeklyRule()) == "Weekly"

    def test_biweekly(self):
        assert describe_rule(BiweeklyRule(days=("tue", "thu"))) == "Every 2 weeks on Tue, Thu"
        assert describe_rule(BiweeklyRule()) == "Every 2 weeks"

    def test_monthly(self):
        assert describe_rule(MonthlyRule(until=date(2024, 1, 1))) == "Monthly"
