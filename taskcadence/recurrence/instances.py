"""Materialize a recurring task's rule into stored TaskInstance rows."""

from __future__ import annotations

import logging
import threading
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from taskcadence.database.recurrence_rule_repository import RecurrenceRuleRepository
from taskcadence.database.repository import TaskRepository
from taskcadence.database.task_instance_repository import TaskInstanceRepository
from taskcadence.engine.materialize import materialize
from taskcadence.models.constants import DEFAULT_HORIZON_DAYS, DEFAULT_MAX_INSTANCES
from taskcadence.models.task import TaskInstance

logger = logging.getLogger(__name__)


class TaskNotFoundError(LookupError):
    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class NotRecurringError(LookupError):
    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} has no recurrence rule")
        self.task_id = task_id


@dataclass
class GenerationResult:
    created: List[TaskInstance] = field(default_factory=list)
    dates: List[datetime] = field(default_factory=list)
    skipped_existing: int = 0


# One generation in flight per task (within this process). Writers in other
# processes converge through the (task_id, occurrence_at) unique constraint.
# Entries disappear once no generation holds the lock.
_task_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
_task_locks_guard = threading.Lock()


def _lock_for(task_id: str) -> threading.Lock:
    with _task_locks_guard:
        lock = _task_locks.get(task_id)
        if lock is None:
            lock = threading.Lock()
            _task_locks[task_id] = lock
        return lock


def generate_instances(
    db: Session,
    task_id: str,
    *,
    max_instances: int = DEFAULT_MAX_INSTANCES,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    now: Optional[datetime] = None,
) -> GenerationResult:
    """Extend a recurring task's stored instances by one bounded window.

    Series progress (anchor, last occurrence, occurrences produced) lives on the rule row,
    so deleting instances neither rewinds the window nor frees AfterCount budget.
    A rule's first window starts at the task's due date (or `now`), but never before an
    occurrence the task already has from an earlier rule.

    Raises:
        TaskNotFoundError: no active task with that id
        NotRecurringError: the task has no recurrence rule
        RecurrenceValidationError / CalculationError: propagated from the engine
    """
    task_repo = TaskRepository(db)
    rule_repo = RecurrenceRuleRepository(db)
    instance_repo = TaskInstanceRepository(db)

    if not task_repo.exists(task_id):
        raise TaskNotFoundError(task_id)

    with _lock_for(task_id):
        task = task_repo.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        rule_row = rule_repo.get_for_task(task_id)
        if rule_row is None:
            raise NotRecurringError(task_id)
        rule = rule_row.to_rule()

        if rule_row.last_occurrence_at is not None:
            series_start = rule_row.last_occurrence_at
        else:
            series_start = task.due_date or now or datetime.utcnow()
            earlier = instance_repo.latest_occurrence_for_task(task_id)
            if earlier is not None and earlier > series_start:
                series_start = earlier
        anchor = rule_row.series_anchor_at or task.due_date or series_start

        already = rule_row.materialized_count or 0
        dates = materialize(
            rule,
            series_start,
            max_instances=max_instances,
            horizon=timedelta(days=horizon_days),
            anchor=anchor,
            already_materialized=already,
        )

        result = GenerationResult(dates=dates)
        for occurrence_at in dates:
            instance = instance_repo.create_if_absent(task_id, rule_row.id, occurrence_at)
            if instance is None:
                result.skipped_existing += 1
            else:
                result.created.append(instance)

        rule_repo.record_progress(
            rule_row,
            anchor,
            dates[-1] if dates else None,
            len(result.created),
        )

    logger.info(
        f"Generated {len(result.created)} instances for task {task_id} "
        f"({result.skipped_existing} already stored, {already} before this window)"
    )
    return result
