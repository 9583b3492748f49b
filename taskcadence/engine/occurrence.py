"""Next-occurrence calculation for recurrence rules.

All values are naive datetimes in a single reference calendar (no timezone
conversion). Day-granular patterns preserve the time of day of `last_occurrence`.

Month arithmetic uses `relativedelta`, which clamps an absolute day to the last
day of the target month: a rule for the 31st lands on Feb 28/29, Apr 30, etc.
and never rolls over into the following month.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, Optional, Union

from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

from taskcadence.engine.errors import CalculationError
from taskcadence.engine.validator import validate_rule
from taskcadence.models.constants import LAST_WEEK_OF_MONTH
from taskcadence.models.recurrence import (
    CustomUnit,
    EndsAfterCount,
    EndsOnDate,
    MonthlyMode,
    RecurrencePattern,
    RecurrenceRule,
    Weekday,
)

DateLike = Union[date, datetime]

_RD_WEEKDAY = {
    Weekday.MO: MO,
    Weekday.TU: TU,
    Weekday.WE: WE,
    Weekday.TH: TH,
    Weekday.FR: FR,
    Weekday.SA: SA,
    Weekday.SU: SU,
}


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time(0, 0))


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _next_daily(rule: RecurrenceRule, last: datetime, start: Optional[datetime]) -> datetime:
    return last + timedelta(days=rule.interval)


def _next_weekly(rule: RecurrenceRule, last: datetime, start: Optional[datetime]) -> datetime:
    current = Weekday.of(last).to_index()
    targets = [day.to_index() for day in rule.days_of_week]
    later_this_week = [t for t in targets if t > current]
    if later_this_week:
        return last + timedelta(days=later_this_week[0] - current)
    # First configured weekday of the week `interval` weeks ahead (weeks start Monday).
    days = (7 - current + targets[0]) + (rule.interval - 1) * 7
    return last + timedelta(days=days)


def _next_monthly(rule: RecurrenceRule, last: datetime, start: Optional[datetime]) -> datetime:
    if rule.monthly_mode == MonthlyMode.BY_DAY:
        return last + relativedelta(months=rule.interval, day=rule.day_of_month)

    wd = _RD_WEEKDAY[rule.day_of_week_for_month]
    month_start = last + relativedelta(months=rule.interval, day=1)
    if rule.week_of_month == LAST_WEEK_OF_MONTH:
        # Walk backward from the month's last day.
        return month_start + relativedelta(day=31, weekday=wd(-1))
    return month_start + relativedelta(weekday=wd(+rule.week_of_month))


def _next_yearly(rule: RecurrenceRule, last: datetime, start: Optional[datetime]) -> datetime:
    # Anchor month/day to the series start so a Feb 29 series returns to the 29th in leap years.
    anchor = start or last
    return last + relativedelta(years=rule.interval, month=anchor.month, day=anchor.day)


def _step_counting(last: datetime, interval: int, qualifies: Callable[[Weekday], bool]) -> datetime:
    cur = last
    counted = 0
    while counted < interval:
        cur = cur + timedelta(days=1)
        if qualifies(Weekday.of(cur)):
            counted += 1
    return cur


def _next_workday(rule: RecurrenceRule, last: datetime, start: Optional[datetime]) -> datetime:
    return _step_counting(last, rule.interval, lambda wd: not wd.is_weekend)


def _next_weekend_day(rule: RecurrenceRule, last: datetime, start: Optional[datetime]) -> datetime:
    return _step_counting(last, rule.interval, lambda wd: wd.is_weekend)


def _next_custom(rule: RecurrenceRule, last: datetime, start: Optional[datetime]) -> datetime:
    unit = rule.custom_unit
    if unit == CustomUnit.HOURS:
        return last + timedelta(hours=rule.interval)
    if unit == CustomUnit.DAYS:
        return last + timedelta(days=rule.interval)
    if unit == CustomUnit.WEEKS:
        return last + timedelta(weeks=rule.interval)
    anchor_day = (start or last).day
    return last + relativedelta(months=rule.interval, day=anchor_day)


_CALCULATORS: Dict[RecurrencePattern, Callable[[RecurrenceRule, datetime, Optional[datetime]], datetime]] = {
    RecurrencePattern.DAILY: _next_daily,
    RecurrencePattern.WEEKLY: _next_weekly,
    RecurrencePattern.MONTHLY: _next_monthly,
    RecurrencePattern.YEARLY: _next_yearly,
    RecurrencePattern.WORKDAYS: _next_workday,
    RecurrencePattern.WEEKENDS: _next_weekend_day,
    RecurrencePattern.CUSTOM: _next_custom,
}


def next_occurrence(
    rule: RecurrenceRule,
    last_occurrence: DateLike,
    series_start: Optional[DateLike] = None,
) -> Optional[datetime]:
    """Return the next occurrence strictly after `last_occurrence`.

    Args:
        rule: Recurrence rule (validated before use)
        last_occurrence: Most recent occurrence (or the series start for the first call)
        series_start: Anchor of the series; used by yearly and custom-monthly rules
            to keep the original month/day across clamped months

    Returns:
        The next occurrence, or None if an end date is already exceeded by it.

    Raises:
        RecurrenceValidationError: the rule is inconsistent
        CalculationError: the next occurrence is not a representable date
    """
    validate_rule(rule)
    last = _as_datetime(last_occurrence)
    start = _as_datetime(series_start) if series_start is not None else None

    try:
        candidate = _CALCULATORS[rule.pattern](rule, last, start)
    except (OverflowError, ValueError) as e:
        raise CalculationError(
            f"Could not compute next {rule.pattern.value} occurrence after {last.isoformat()}: {e}",
            pattern=rule.pattern.value,
        ) from e

    end = rule.end_condition
    if isinstance(end, EndsOnDate) and candidate.date() > end.until:
        return None
    return candidate


def should_continue(rule: RecurrenceRule, occurrence_count: int, current_date: DateLike) -> bool:
    """Decide whether the series may produce an occurrence at `current_date`.

    `occurrence_count` is the number of occurrences already produced.
    """
    end = rule.end_condition
    if isinstance(end, EndsOnDate) and end.until is not None:
        return _as_date(current_date) <= end.until
    if isinstance(end, EndsAfterCount) and end.count is not None:
        return occurrence_count < end.count
    return True
