"""Recurrence rule validation.

`check_rule` is pure and total: it never raises, it returns the first violated
invariant (or None). Invariants are checked in a fixed order so the reported error
is deterministic for a given rule.
"""

from typing import Optional

from taskcadence.engine.errors import RecurrenceValidationError, RuleViolation
from taskcadence.models.constants import (
    LAST_WEEK_OF_MONTH,
    MAX_DAY_OF_MONTH,
    MIN_DAY_OF_MONTH,
    MIN_END_COUNT,
    MIN_INTERVAL,
    MIN_WEEK_OF_MONTH,
)
from taskcadence.models.recurrence import (
    EndsAfterCount,
    EndsOnDate,
    RecurrencePattern,
    RecurrenceRule,
)


def _error(violation: RuleViolation, field: str, value, message: str) -> RecurrenceValidationError:
    return RecurrenceValidationError(violation, field, value, message)


def _check_monthly(rule: RecurrenceRule) -> Optional[RecurrenceValidationError]:
    has_day = rule.day_of_month is not None
    has_week = rule.week_of_month is not None
    has_weekday = rule.day_of_week_for_month is not None

    if has_day and (has_week or has_weekday):
        return _error(
            RuleViolation.MONTHLY_MODE_CONFLICT,
            "day_of_month",
            rule.day_of_month,
            "Monthly recurrence must use either day_of_month or week_of_month, not both",
        )
    if not has_day and not has_week and not has_weekday:
        return _error(
            RuleViolation.MONTHLY_MODE_MISSING,
            "day_of_month",
            None,
            "Monthly recurrence requires either day_of_month or week_of_month",
        )
    if has_week != has_weekday:
        field = "day_of_week_for_month" if has_week else "week_of_month"
        return _error(
            RuleViolation.MONTHLY_WEEKDAY_INCOMPLETE,
            field,
            None,
            "Monthly recurrence with week_of_month requires day_of_week_for_month",
        )
    if has_week and not MIN_WEEK_OF_MONTH <= rule.week_of_month <= LAST_WEEK_OF_MONTH:
        return _error(
            RuleViolation.WEEK_OF_MONTH_OUT_OF_RANGE,
            "week_of_month",
            rule.week_of_month,
            f"week_of_month must be between {MIN_WEEK_OF_MONTH} and {LAST_WEEK_OF_MONTH}",
        )
    if has_day and not MIN_DAY_OF_MONTH <= rule.day_of_month <= MAX_DAY_OF_MONTH:
        return _error(
            RuleViolation.DAY_OF_MONTH_OUT_OF_RANGE,
            "day_of_month",
            rule.day_of_month,
            f"day_of_month must be between {MIN_DAY_OF_MONTH} and {MAX_DAY_OF_MONTH}",
        )
    return None


def check_rule(rule: RecurrenceRule) -> Optional[RecurrenceValidationError]:
    """Return the first invariant the rule violates, or None if it is valid."""
    if rule.interval < MIN_INTERVAL:
        return _error(
            RuleViolation.INTERVAL_TOO_SMALL,
            "interval",
            rule.interval,
            f"Interval must be at least {MIN_INTERVAL}",
        )

    if rule.pattern == RecurrencePattern.WEEKLY and not rule.days_of_week:
        return _error(
            RuleViolation.WEEKLY_WITHOUT_DAYS,
            "days_of_week",
            rule.days_of_week,
            "Weekly recurrence requires at least one day of week",
        )

    if rule.pattern == RecurrencePattern.MONTHLY:
        monthly_error = _check_monthly(rule)
        if monthly_error is not None:
            return monthly_error

    if rule.pattern == RecurrencePattern.CUSTOM and rule.custom_unit is None:
        return _error(
            RuleViolation.CUSTOM_WITHOUT_UNIT,
            "custom_unit",
            None,
            "Custom recurrence requires custom_unit",
        )

    end = rule.end_condition
    if isinstance(end, EndsOnDate) and end.until is None:
        return _error(
            RuleViolation.END_DATE_MISSING,
            "end_condition.until",
            None,
            'End type "date" requires an end date',
        )
    if isinstance(end, EndsAfterCount) and (end.count is None or end.count < MIN_END_COUNT):
        return _error(
            RuleViolation.END_COUNT_TOO_SMALL,
            "end_condition.count",
            end.count,
            f'End type "count" requires a count >= {MIN_END_COUNT}',
        )

    return None


def validate_rule(rule: RecurrenceRule) -> RecurrenceRule:
    """Raise RecurrenceValidationError if the rule is inconsistent; return it otherwise."""
    error = check_rule(rule)
    if error is not None:
        raise error
    return rule


def is_valid_rule(rule: RecurrenceRule) -> bool:
    return check_rule(rule) is None
