"""Typed errors raised by the recurrence engine.

Everything here is deterministic: the same input always fails the same way, so
nothing is retried at this layer.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class RuleViolation(str, Enum):
    """Which rule invariant failed."""

    INTERVAL_TOO_SMALL = "interval_too_small"
    WEEKLY_WITHOUT_DAYS = "weekly_without_days"
    MONTHLY_MODE_MISSING = "monthly_mode_missing"
    MONTHLY_MODE_CONFLICT = "monthly_mode_conflict"
    MONTHLY_WEEKDAY_INCOMPLETE = "monthly_weekday_incomplete"
    WEEK_OF_MONTH_OUT_OF_RANGE = "week_of_month_out_of_range"
    DAY_OF_MONTH_OUT_OF_RANGE = "day_of_month_out_of_range"
    CUSTOM_WITHOUT_UNIT = "custom_without_unit"
    END_DATE_MISSING = "end_date_missing"
    END_COUNT_TOO_SMALL = "end_count_too_small"


class RecurrenceValidationError(ValueError):
    """Structured rule error that can be surfaced to the user as a 400."""

    def __init__(self, violation: RuleViolation, field: str, value: Any, message: str):
        super().__init__(message)
        self.violation = violation
        self.field = field
        self.value = value
        self.message = message

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "violation": self.violation.value,
            "field": self.field,
            "value": self.value,
        }


class CalculationError(ArithmeticError):
    """Calendar arithmetic failed (e.g. the next occurrence is not a representable date)."""

    def __init__(self, message: str, *, pattern: Optional[str] = None):
        super().__init__(message)
        self.pattern = pattern
