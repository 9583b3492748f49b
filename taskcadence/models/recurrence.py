"""Recurrence rule models for taskcadence.

Canonical internal representation of "how a task repeats".
Weekdays are always carried as `Weekday` members; raw integers (0 = Monday .. 6 = Sunday,
the numbering used by the task form and by storage) are converted once, at the model boundary.
Semantic invariants are enforced by `taskcadence.engine.validator`, not here, so that a
malformed rule can still be represented and reported field by field.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class RecurrencePattern(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    WORKDAYS = "workdays"
    WEEKENDS = "weekends"
    CUSTOM = "custom"


class CustomUnit(str, Enum):
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class MonthlyMode(str, Enum):
    BY_DAY = "by_day"
    BY_WEEKDAY = "by_weekday"


class Weekday(str, Enum):
    MO = "mo"
    TU = "tu"
    WE = "we"
    TH = "th"
    FR = "fr"
    SA = "sa"
    SU = "su"

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        """Convert a 0 = Monday .. 6 = Sunday index (form/storage numbering)."""
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= 6:
            raise ValueError(f"weekday index must be 0 (Monday) .. 6 (Sunday), got {index!r}")
        return _WEEKDAY_ORDER[index]

    @classmethod
    def of(cls, d: date) -> "Weekday":
        # Python weekday: Monday=0 ... Sunday=6
        return _WEEKDAY_ORDER[d.weekday()]

    def to_index(self) -> int:
        return _WEEKDAY_ORDER.index(self)

    @property
    def is_weekend(self) -> bool:
        return self in (Weekday.SA, Weekday.SU)


_WEEKDAY_ORDER: List[Weekday] = [
    Weekday.MO,
    Weekday.TU,
    Weekday.WE,
    Weekday.TH,
    Weekday.FR,
    Weekday.SA,
    Weekday.SU,
]


def _coerce_weekday(value):
    if isinstance(value, Weekday) or value is None:
        return value
    if isinstance(value, int):
        return Weekday.from_index(value)
    if isinstance(value, str):
        return Weekday(value.strip().lower()[:2])
    return value


class NeverEnds(BaseModel):
    type: Literal["never"] = "never"


class EndsOnDate(BaseModel):
    type: Literal["date"] = "date"
    until: Optional[date] = Field(None, description="Last date (inclusive) on which an occurrence may fall")


class EndsAfterCount(BaseModel):
    type: Literal["count"] = "count"
    count: Optional[int] = Field(None, description="Total number of occurrences in the series")


EndCondition = Annotated[Union[NeverEnds, EndsOnDate, EndsAfterCount], Field(discriminator="type")]


class RecurrenceRule(BaseModel):
    """Declarative description of a repeating task.

    Notes:
    - Only the fields relevant to `pattern` are read by the calculator; `normalized()`
      clears the rest before a rule is stored.
    - Monthly rules pick exactly one sub-mode: `day_of_month`, or
      `week_of_month` + `day_of_week_for_month` (week 5 means "last").
    """

    pattern: RecurrencePattern
    interval: int = Field(1, description="Every N units (unit depends on pattern)")

    # Weekly specifics
    days_of_week: Optional[List[Weekday]] = Field(
        None, description="For weekly recurrence: weekdays on which it occurs"
    )

    # Monthly specifics
    day_of_month: Optional[int] = Field(None, description="Monthly by day: 1-31, clamped to month length")
    week_of_month: Optional[int] = Field(None, description="Monthly by nth weekday: 1-4, or 5 for last")
    day_of_week_for_month: Optional[Weekday] = None

    # Custom specifics
    custom_unit: Optional[CustomUnit] = None

    end_condition: EndCondition = Field(default_factory=NeverEnds)

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _coerce_days_of_week(cls, v):
        if v is None:
            return None
        return [_coerce_weekday(day) for day in v]

    @field_validator("days_of_week")
    @classmethod
    def _sort_days_of_week(cls, v):
        if v is None:
            return None
        # Deduplicate; calendar order (Monday first)
        return sorted(set(v), key=lambda day: day.to_index())

    @field_validator("day_of_week_for_month", mode="before")
    @classmethod
    def _coerce_day_of_week_for_month(cls, v):
        return _coerce_weekday(v)

    @property
    def monthly_mode(self) -> Optional[MonthlyMode]:
        if self.pattern != RecurrencePattern.MONTHLY:
            return None
        if self.day_of_month is not None and self.week_of_month is None:
            return MonthlyMode.BY_DAY
        if self.week_of_month is not None and self.day_of_month is None:
            return MonthlyMode.BY_WEEKDAY
        return None

    def normalized(self) -> "RecurrenceRule":
        """Return a copy with fields irrelevant to the active pattern cleared."""
        update = {
            "days_of_week": self.days_of_week if self.pattern == RecurrencePattern.WEEKLY else None,
            "custom_unit": self.custom_unit if self.pattern == RecurrencePattern.CUSTOM else None,
        }
        if self.pattern != RecurrencePattern.MONTHLY:
            update.update(day_of_month=None, week_of_month=None, day_of_week_for_month=None)
        return self.model_copy(update=update)


class RecurrenceRuleUpdate(BaseModel):
    """Partial update for an existing rule; unset fields keep their current value."""

    pattern: Optional[RecurrencePattern] = None
    interval: Optional[int] = None
    days_of_week: Optional[List[Weekday]] = None
    day_of_month: Optional[int] = None
    week_of_month: Optional[int] = None
    day_of_week_for_month: Optional[Weekday] = None
    custom_unit: Optional[CustomUnit] = None
    end_condition: Optional[EndCondition] = None

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _coerce_days_of_week(cls, v):
        if v is None:
            return None
        return [_coerce_weekday(day) for day in v]

    @field_validator("day_of_week_for_month", mode="before")
    @classmethod
    def _coerce_day_of_week_for_month(cls, v):
        return _coerce_weekday(v)

    def apply_to(self, rule: RecurrenceRule) -> RecurrenceRule:
        data = rule.model_dump()
        data.update(self.model_dump(exclude_unset=True))
        return RecurrenceRule.model_validate(data)
