"""Repository for RecurrenceRule database operations."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from taskcadence.database.models import RecurrenceRuleDB, TaskInstanceDB
from taskcadence.engine.validator import validate_rule
from taskcadence.models.recurrence import RecurrenceRule, RecurrenceRuleUpdate
from taskcadence.models.task import InstanceStatus

logger = logging.getLogger(__name__)


class RuleAlreadyExistsError(ValueError):
    """The task already owns a recurrence rule."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} already has a recurrence rule")
        self.task_id = task_id


class RecurrenceRuleRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_for_task(self, task_id: str, rule: RecurrenceRule) -> RecurrenceRuleDB:
        """Validate and store the rule that makes `task_id` recurring."""
        validate_rule(rule)
        if self.get_for_task(task_id) is not None:
            raise RuleAlreadyExistsError(task_id)

        row = RecurrenceRuleDB.from_rule(task_id, rule.normalized())
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Created {row.pattern} recurrence rule {row.id} for task {task_id}")
            return row
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create recurrence rule for task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, rule_id: str) -> Optional[RecurrenceRuleDB]:
        return self.db.query(RecurrenceRuleDB).filter(RecurrenceRuleDB.id == rule_id).first()

    def get_for_task(self, task_id: str) -> Optional[RecurrenceRuleDB]:
        return self.db.query(RecurrenceRuleDB).filter(RecurrenceRuleDB.task_id == task_id).first()

    def record_progress(
        self,
        row: RecurrenceRuleDB,
        anchor: datetime,
        last_occurrence: Optional[datetime],
        created: int,
    ) -> RecurrenceRuleDB:
        """Advance the rule's series after a generation window.

        `created` is added in SQL so writers in other processes do not lose increments.
        """
        values = {
            RecurrenceRuleDB.materialized_count: RecurrenceRuleDB.materialized_count + created,
            RecurrenceRuleDB.updated_at: datetime.utcnow(),
        }
        if row.series_anchor_at is None:
            values[RecurrenceRuleDB.series_anchor_at] = anchor
        if last_occurrence is not None and (
            row.last_occurrence_at is None or last_occurrence > row.last_occurrence_at
        ):
            values[RecurrenceRuleDB.last_occurrence_at] = last_occurrence
        try:
            self.db.query(RecurrenceRuleDB).filter(RecurrenceRuleDB.id == row.id).update(
                values, synchronize_session=False
            )
            self.db.commit()
            self.db.refresh(row)
            return row
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to record progress for rule {row.id}: {type(e).__name__}: {str(e)}")
            raise

    def update_for_task(self, task_id: str, update: RecurrenceRuleUpdate) -> Optional[RecurrenceRuleDB]:
        """Merge a partial update into the task's rule; the merged rule is re-validated."""
        row = self.get_for_task(task_id)
        if row is None:
            return None

        merged = validate_rule(update.apply_to(row.to_rule()))
        row.apply_rule(merged.normalized())
        row.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Updated recurrence rule {row.id} for task {task_id}")
            return row
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update recurrence rule for task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete_for_task(self, task_id: str) -> bool:
        """Turn recurrence off: delete the rule and the task's pending instances."""
        row = self.get_for_task(task_id)
        if row is None:
            return False

        self.db.query(TaskInstanceDB).filter(
            TaskInstanceDB.task_id == task_id,
            TaskInstanceDB.status == InstanceStatus.PENDING.value,
        ).delete(synchronize_session=False)
        self.db.delete(row)
        try:
            self.db.commit()
            logger.debug(f"Deleted recurrence rule for task {task_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete recurrence rule for task {task_id}: {type(e).__name__}: {str(e)}")
            raise
