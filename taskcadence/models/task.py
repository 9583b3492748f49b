"""Task and task instance data models for taskcadence."""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from taskcadence.models.recurrence import RecurrenceRule


class TaskStatus(str, Enum):
    """Task status enumeration."""
    OPEN = "open"
    COMPLETED = "completed"


class InstanceStatus(str, Enum):
    """Status of a single materialized occurrence."""
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class NonRecurring(BaseModel):
    kind: Literal["none"] = "none"


class Recurring(BaseModel):
    kind: Literal["recurring"] = "recurring"
    rule_id: Optional[str] = Field(None, description="Stored rule id (null until persisted)")
    rule: RecurrenceRule


# A task owns zero or one recurrence rule.
TaskRecurrence = Annotated[Union[NonRecurring, Recurring], Field(discriminator="kind")]


class Task(BaseModel):
    """Canonical Task model."""

    id: str = Field(..., description="Unique task identifier (UUID v4)")
    title: str = Field(..., description="Task title")
    notes: Optional[str] = Field(None, description="Task notes or description")
    status: TaskStatus = Field(TaskStatus.OPEN, description="Task status")
    due_date: Optional[datetime] = Field(
        None, description="First occurrence; anchors the recurrence series when present"
    )
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")
    deleted_at: Optional[datetime] = Field(None, description="Soft-delete timestamp (null if active)")
    recurrence: TaskRecurrence = Field(default_factory=NonRecurring)

    @property
    def is_recurring(self) -> bool:
        return isinstance(self.recurrence, Recurring)

    @property
    def rule(self) -> Optional[RecurrenceRule]:
        return self.recurrence.rule if isinstance(self.recurrence, Recurring) else None


class TaskInstance(BaseModel):
    """A concrete scheduled occurrence of a recurring task."""

    id: str = Field(..., description="Unique instance identifier (UUID v4)")
    task_id: str = Field(..., description="Owning task")
    rule_id: Optional[str] = Field(
        None, description="Rule the occurrence was derived from (null once that rule is deleted)"
    )
    occurrence_at: datetime = Field(..., description="Occurrence date (time preserved for hourly rules)")
    status: InstanceStatus = Field(InstanceStatus.PENDING, description="Instance status")
    created_at: datetime = Field(..., description="Instance creation timestamp")
    updated_at: datetime = Field(..., description="Instance last update timestamp")
    completed_at: Optional[datetime] = None

    @property
    def occurrence_date(self) -> date:
        return self.occurrence_at.date()
