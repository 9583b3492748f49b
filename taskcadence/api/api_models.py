"""Request/response models for the taskcadence API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from taskcadence.models.constants import (
    DEFAULT_HORIZON_DAYS,
    DEFAULT_PREVIEW_COUNT,
    MAX_HORIZON_DAYS,
    MAX_INSTANCES_LIMIT,
)
from taskcadence.models.recurrence import RecurrenceRule
from taskcadence.models.task import InstanceStatus, Task, TaskInstance


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    notes: Optional[str] = None
    due_date: Optional[datetime] = None
    recurrence: Optional[RecurrenceRule] = Field(None, description="Makes the task recurring")


class TaskResponse(BaseModel):
    task: Task


class TaskListResponse(BaseModel):
    tasks: List[Task]
    count: int


class RecurrenceRuleResponse(BaseModel):
    id: str
    task_id: str
    rule: RecurrenceRule
    created_at: datetime
    updated_at: datetime


class InstanceListResponse(BaseModel):
    instances: List[TaskInstance]
    count: int


class GenerateInstancesResponse(BaseModel):
    instances: List[TaskInstance]
    created_count: int
    skipped_existing: int
    message: str


class InstanceUpdateRequest(BaseModel):
    status: InstanceStatus


class InstanceResponse(BaseModel):
    instance: TaskInstance


class PreviewRequest(BaseModel):
    rule: RecurrenceRule
    start: Optional[datetime] = Field(None, description="Series start (exclusive); defaults to now")
    max_instances: int = Field(DEFAULT_PREVIEW_COUNT, ge=0, le=MAX_INSTANCES_LIMIT)
    horizon_days: int = Field(DEFAULT_HORIZON_DAYS, ge=0, le=MAX_HORIZON_DAYS)


class PreviewResponse(BaseModel):
    dates: List[datetime]
    count: int
