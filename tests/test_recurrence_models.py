"""Tests for recurrence rule models and weekday conversion at the boundary."""

import pytest
from datetime import date
from pydantic import ValidationError

from taskcadence.models.recurrence import (
    CustomUnit,
    EndsAfterCount,
    EndsOnDate,
    MonthlyMode,
    NeverEnds,
    RecurrencePattern,
    RecurrenceRule,
    RecurrenceRuleUpdate,
    Weekday,
)


class TestWeekday:
    """Form/storage numbering is 0 = Monday .. 6 = Sunday."""

    @pytest.mark.parametrize(
        "index,expected",
        [
            (0, Weekday.MO),
            (1, Weekday.TU),
            (2, Weekday.WE),
            (3, Weekday.TH),
            (4, Weekday.FR),
            (5, Weekday.SA),
            (6, Weekday.SU),
        ],
    )
    def test_from_index(self, index, expected):
        assert Weekday.from_index(index) == expected
        assert expected.to_index() == index

    @pytest.mark.parametrize("index", [-1, 7, True])
    def test_from_index_rejects_out_of_range(self, index):
        with pytest.raises(ValueError):
            Weekday.from_index(index)

    def test_of_matches_calendar(self):
        # 2024-01-01 was a Monday, 2024-01-07 a Sunday.
        assert Weekday.of(date(2024, 1, 1)) == Weekday.MO
        assert Weekday.of(date(2024, 1, 7)) == Weekday.SU
        assert Weekday.of(date(2024, 2, 29)) == Weekday.TH

    def test_is_weekend(self):
        assert [d for d in Weekday if d.is_weekend] == [Weekday.SA, Weekday.SU]


class TestRecurrenceRule:
    def test_days_of_week_accepts_indices_and_sorts(self):
        rule = RecurrenceRule(pattern=RecurrencePattern.WEEKLY, days_of_week=[4, 0, 2, 2])
        assert rule.days_of_week == [Weekday.MO, Weekday.WE, Weekday.FR]

    def test_days_of_week_accepts_names(self):
        rule = RecurrenceRule(pattern="weekly", days_of_week=["Friday", "mo", "SUNDAY"])
        assert rule.days_of_week == [Weekday.MO, Weekday.FR, Weekday.SU]

    def test_invalid_weekday_index_is_rejected(self):
        with pytest.raises(ValidationError):
            RecurrenceRule(pattern=RecurrencePattern.WEEKLY, days_of_week=[7])

    def test_day_of_week_for_month_accepts_index(self):
        rule = RecurrenceRule(pattern="monthly", week_of_month=2, day_of_week_for_month=0)
        assert rule.day_of_week_for_month == Weekday.MO
        assert rule.monthly_mode == MonthlyMode.BY_WEEKDAY

    def test_defaults(self):
        rule = RecurrenceRule(pattern=RecurrencePattern.DAILY)
        assert rule.interval == 1
        assert isinstance(rule.end_condition, NeverEnds)

    def test_end_condition_is_discriminated(self):
        by_date = RecurrenceRule(pattern="daily", end_condition={"type": "date", "until": "2024-03-01"})
        by_count = RecurrenceRule(pattern="daily", end_condition={"type": "count", "count": 4})
        assert isinstance(by_date.end_condition, EndsOnDate)
        assert by_date.end_condition.until == date(2024, 3, 1)
        assert isinstance(by_count.end_condition, EndsAfterCount)
        assert by_count.end_condition.count == 4

    def test_monthly_mode(self):
        assert RecurrenceRule(pattern="monthly", day_of_month=5).monthly_mode == MonthlyMode.BY_DAY
        assert RecurrenceRule(pattern="monthly").monthly_mode is None
        assert RecurrenceRule(pattern="daily", day_of_month=5).monthly_mode is None

    def test_normalized_clears_irrelevant_fields(self):
        rule = RecurrenceRule(
            pattern=RecurrencePattern.DAILY,
            days_of_week=[Weekday.MO],
            day_of_month=3,
            custom_unit=CustomUnit.HOURS,
        )
        normalized = rule.normalized()
        assert normalized.days_of_week is None
        assert normalized.day_of_month is None
        assert normalized.custom_unit is None
        # Original untouched.
        assert rule.day_of_month == 3

    def test_normalized_keeps_monthly_fields(self):
        rule = RecurrenceRule(pattern="monthly", day_of_month=31, days_of_week=[0])
        normalized = rule.normalized()
        assert normalized.day_of_month == 31
        assert normalized.days_of_week is None


class TestRecurrenceRuleUpdate:
    def test_unset_fields_keep_current_values(self, weekly_rule):
        updated = RecurrenceRuleUpdate(interval=3).apply_to(weekly_rule)
        assert updated.interval == 3
        assert updated.days_of_week == weekly_rule.days_of_week

    def test_explicit_null_clears_field(self):
        rule = RecurrenceRule(pattern="monthly", day_of_month=10)
        update = RecurrenceRuleUpdate.model_validate(
            {"day_of_month": None, "week_of_month": 5, "day_of_week_for_month": "fr"}
        )
        updated = update.apply_to(rule)
        assert updated.day_of_month is None
        assert updated.monthly_mode == MonthlyMode.BY_WEEKDAY
        assert updated.day_of_week_for_month == Weekday.FR

    def test_end_condition_replaced(self, daily_rule):
        updated = RecurrenceRuleUpdate.model_validate(
            {"end_condition": {"type": "count", "count": 10}}
        ).apply_to(daily_rule)
        assert isinstance(updated.end_condition, EndsAfterCount)
        assert updated.end_condition.count == 10
        assert updated.pattern == RecurrencePattern.DAILY
