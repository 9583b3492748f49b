"""Data models for taskcadence."""

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
from taskcadence.models.task import (
    InstanceStatus,
    NonRecurring,
    Recurring,
    Task,
    TaskInstance,
    TaskStatus,
)

__all__ = [
    "CustomUnit",
    "EndsAfterCount",
    "EndsOnDate",
    "MonthlyMode",
    "NeverEnds",
    "RecurrencePattern",
    "RecurrenceRule",
    "RecurrenceRuleUpdate",
    "Weekday",
    "InstanceStatus",
    "NonRecurring",
    "Recurring",
    "Task",
    "TaskInstance",
    "TaskStatus",
]
