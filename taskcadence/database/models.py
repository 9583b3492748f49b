"""SQLAlchemy database models for taskcadence."""

from datetime import datetime
from typing import Optional, Union, TypeVar, Type
import uuid
from sqlalchemy import Column, String, Integer, Date, DateTime, JSON, ForeignKey, UniqueConstraint

from taskcadence.database.database import Base
from taskcadence.models.recurrence import (
    CustomUnit,
    EndsAfterCount,
    EndsOnDate,
    NeverEnds,
    RecurrencePattern,
    RecurrenceRule,
    Weekday,
)
from taskcadence.models.task import InstanceStatus, TaskStatus

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


class TaskDB(Base):
    """Database model for Task.

    Whether a task recurs is derived from the presence of a row in `recurrence_rules`;
    there is no separate flag to fall out of sync with it.
    """

    __tablename__ = "tasks"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Basic fields
    title = Column(String, nullable=False)
    notes = Column(String, nullable=True)
    status = Column(String, nullable=False, default=TaskStatus.OPEN.value)
    due_date = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True, index=True)

    def to_pydantic(self, rule_row: Optional["RecurrenceRuleDB"] = None):
        """Convert database model to Pydantic model (with its rule row, if any)."""
        from taskcadence.models.task import NonRecurring, Recurring, Task

        recurrence = NonRecurring()
        if rule_row is not None:
            recurrence = Recurring(rule_id=rule_row.id, rule=rule_row.to_rule())

        return Task(
            id=self.id,
            title=self.title,
            notes=self.notes,
            status=value_to_enum(self.status, TaskStatus, TaskStatus.OPEN),
            due_date=self.due_date,
            created_at=self.created_at,
            updated_at=self.updated_at,
            deleted_at=self.deleted_at,
            recurrence=recurrence,
        )

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model (the rule is stored separately)."""
        return cls(
            id=task.id,
            title=task.title,
            notes=task.notes,
            status=enum_to_value(task.status),
            due_date=task.due_date,
            created_at=task.created_at,
            updated_at=task.updated_at,
            deleted_at=task.deleted_at,
        )


class RecurrenceRuleDB(Base):
    """Database model for a task's recurrence rule (at most one per task)."""

    __tablename__ = "recurrence_rules"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)

    pattern = Column(String, nullable=False)
    interval = Column(Integer, nullable=False, default=1)

    # Weekdays stored as 0 = Monday .. 6 = Sunday (same numbering as the task form)
    days_of_week = Column(JSON, nullable=True)
    day_of_month = Column(Integer, nullable=True)
    week_of_month = Column(Integer, nullable=True)
    day_of_week_for_month = Column(Integer, nullable=True)
    custom_unit = Column(String, nullable=True)

    end_type = Column(String, nullable=False, default="never")
    end_date = Column(Date, nullable=True)
    end_count = Column(Integer, nullable=True)

    # Series progress. Kept on the rule so deleting instances never rewinds it.
    series_anchor_at = Column(DateTime, nullable=True)
    last_occurrence_at = Column(DateTime, nullable=True)
    materialized_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_rule(self) -> RecurrenceRule:
        """Convert stored columns to a RecurrenceRule."""
        if self.end_type == "date":
            end_condition = EndsOnDate(until=self.end_date)
        elif self.end_type == "count":
            end_condition = EndsAfterCount(count=self.end_count)
        else:
            end_condition = NeverEnds()

        return RecurrenceRule(
            pattern=RecurrencePattern(self.pattern),
            interval=self.interval,
            days_of_week=[Weekday.from_index(i) for i in self.days_of_week] if self.days_of_week else None,
            day_of_month=self.day_of_month,
            week_of_month=self.week_of_month,
            day_of_week_for_month=(
                Weekday.from_index(self.day_of_week_for_month)
                if self.day_of_week_for_month is not None
                else None
            ),
            custom_unit=CustomUnit(self.custom_unit) if self.custom_unit else None,
            end_condition=end_condition,
        )

    def apply_rule(self, rule: RecurrenceRule) -> None:
        """Copy a (normalized) rule into this row's columns."""
        end = rule.end_condition
        self.pattern = enum_to_value(rule.pattern)
        self.interval = rule.interval
        self.days_of_week = [d.to_index() for d in rule.days_of_week] if rule.days_of_week else None
        self.day_of_month = rule.day_of_month
        self.week_of_month = rule.week_of_month
        self.day_of_week_for_month = (
            rule.day_of_week_for_month.to_index() if rule.day_of_week_for_month is not None else None
        )
        self.custom_unit = enum_to_value(rule.custom_unit) if rule.custom_unit is not None else None
        self.end_type = end.type
        self.end_date = end.until if isinstance(end, EndsOnDate) else None
        self.end_count = end.count if isinstance(end, EndsAfterCount) else None

    @classmethod
    def from_rule(cls, task_id: str, rule: RecurrenceRule) -> "RecurrenceRuleDB":
        row = cls(task_id=task_id, materialized_count=0)
        row.apply_rule(rule)
        return row


class TaskInstanceDB(Base):
    """Database model for a materialized occurrence of a recurring task."""

    __tablename__ = "task_instances"
    __table_args__ = (
        # Idempotent upsert key: one instance per task per occurrence.
        UniqueConstraint("task_id", "occurrence_at", name="uq_task_instance_occurrence"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    rule_id = Column(String, ForeignKey("recurrence_rules.id", ondelete="SET NULL"), nullable=True, index=True)

    occurrence_at = Column(DateTime, nullable=False, index=True)
    status = Column(String, nullable=False, default=InstanceStatus.PENDING.value)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from taskcadence.models.task import TaskInstance

        return TaskInstance(
            id=self.id,
            task_id=self.task_id,
            rule_id=self.rule_id,
            occurrence_at=self.occurrence_at,
            status=value_to_enum(self.status, InstanceStatus, InstanceStatus.PENDING),
            created_at=self.created_at,
            updated_at=self.updated_at,
            completed_at=self.completed_at,
        )
