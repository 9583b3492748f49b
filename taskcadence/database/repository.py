"""Repository layer for task database operations."""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from taskcadence.engine.validator import validate_rule
from taskcadence.models.task import InstanceStatus, Recurring, Task
from taskcadence.database.models import RecurrenceRuleDB, TaskDB, TaskInstanceDB

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _rule_row(self, task_id: str) -> Optional[RecurrenceRuleDB]:
        return self.db.query(RecurrenceRuleDB).filter(RecurrenceRuleDB.task_id == task_id).first()

    def create(self, task: Task) -> Task:
        """Create a new task, together with its recurrence rule if it has one."""
        rule_row = None
        if isinstance(task.recurrence, Recurring):
            rule = validate_rule(task.recurrence.rule).normalized()
            rule_row = RecurrenceRuleDB.from_rule(task.id, rule)
        try:
            task_db = TaskDB.from_pydantic(task)
            self.db.add(task_db)
            # Parent row first: the rule references it.
            self.db.flush()
            if rule_row is not None:
                self.db.add(rule_row)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic(rule_row)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, task_id: str) -> Optional[Task]:
        """Get an active task by ID."""
        task_db = self.db.query(TaskDB).filter(
            TaskDB.id == task_id,
            TaskDB.deleted_at.is_(None),
        ).first()
        if task_db is None:
            return None
        return task_db.to_pydantic(self._rule_row(task_id))

    def exists(self, task_id: str) -> bool:
        return self.db.query(TaskDB.id).filter(
            TaskDB.id == task_id,
            TaskDB.deleted_at.is_(None),
        ).first() is not None

    def get_all(self) -> List[Task]:
        """Get all active tasks sorted by creation date (newest first)."""
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.deleted_at.is_(None),
        ).order_by(desc(TaskDB.created_at)).all()
        if not tasks_db:
            return []
        rules: Dict[str, RecurrenceRuleDB] = {
            r.task_id: r
            for r in self.db.query(RecurrenceRuleDB)
            .filter(RecurrenceRuleDB.task_id.in_([t.id for t in tasks_db]))
            .all()
        }
        return [task_db.to_pydantic(rules.get(task_db.id)) for task_db in tasks_db]

    def soft_delete(self, task_id: str) -> bool:
        """Soft delete a task. Its recurrence rule and pending instances are removed."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        if task_db is None or task_db.deleted_at is not None:
            return False

        now = datetime.utcnow()
        task_db.deleted_at = now
        task_db.updated_at = now
        self.db.query(TaskInstanceDB).filter(
            TaskInstanceDB.task_id == task_id,
            TaskInstanceDB.status == InstanceStatus.PENDING.value,
        ).delete(synchronize_session=False)
        self.db.query(RecurrenceRuleDB).filter(
            RecurrenceRuleDB.task_id == task_id,
        ).delete(synchronize_session=False)
        try:
            self.db.commit()
            logger.debug(f"Soft deleted task {task_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to soft delete task {task_id}: {type(e).__name__}: {str(e)}")
            raise
