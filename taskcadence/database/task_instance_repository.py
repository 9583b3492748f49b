"""Repository for TaskInstance database operations."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskcadence.database.models import TaskInstanceDB
from taskcadence.models.task import InstanceStatus, TaskInstance

logger = logging.getLogger(__name__)


class TaskInstanceRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_for_task(self, task_id: str) -> List[TaskInstance]:
        """All instances of a task in occurrence order."""
        rows = (
            self.db.query(TaskInstanceDB)
            .filter(TaskInstanceDB.task_id == task_id)
            .order_by(TaskInstanceDB.occurrence_at.asc())
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def get(self, instance_id: str) -> Optional[TaskInstance]:
        row = self.db.query(TaskInstanceDB).filter(TaskInstanceDB.id == instance_id).first()
        return row.to_pydantic() if row else None

    def latest_occurrence_for_task(self, task_id: str) -> Optional[datetime]:
        """Latest stored occurrence of the task under any rule, past or current."""
        row = (
            self.db.query(TaskInstanceDB.occurrence_at)
            .filter(TaskInstanceDB.task_id == task_id)
            .order_by(TaskInstanceDB.occurrence_at.desc())
            .first()
        )
        return row[0] if row else None

    def create_if_absent(self, task_id: str, rule_id: Optional[str], occurrence_at: datetime) -> Optional[TaskInstance]:
        """Insert the (task, occurrence) instance unless it already exists.

        Returns the new instance, or None if one was already stored (by this or a concurrent writer).
        """
        existing = (
            self.db.query(TaskInstanceDB.id)
            .filter(TaskInstanceDB.task_id == task_id, TaskInstanceDB.occurrence_at == occurrence_at)
            .first()
        )
        if existing is not None:
            return None

        now = datetime.utcnow()
        row = TaskInstanceDB(
            task_id=task_id,
            rule_id=rule_id,
            occurrence_at=occurrence_at,
            status=InstanceStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except IntegrityError:
            # Lost a race with another writer for the same (task, occurrence).
            self.db.rollback()
            logger.debug(f"Instance for task {task_id} at {occurrence_at.isoformat()} already exists")
            return None
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create instance for task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def update_status(self, instance_id: str, status: InstanceStatus) -> Optional[TaskInstance]:
        row = self.db.query(TaskInstanceDB).filter(TaskInstanceDB.id == instance_id).first()
        if row is None:
            return None

        now = datetime.utcnow()
        row.status = status.value
        row.updated_at = now
        row.completed_at = now if status == InstanceStatus.COMPLETED else None
        try:
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update instance {instance_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, instance_id: str) -> bool:
        row = self.db.query(TaskInstanceDB).filter(TaskInstanceDB.id == instance_id).first()
        if row is None:
            return False
        self.db.delete(row)
        try:
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete instance {instance_id}: {type(e).__name__}: {str(e)}")
            raise
