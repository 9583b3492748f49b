"""FastAPI web application for taskcadence."""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from fastapi import Depends, FastAPI, HTTPException, Query, Response
from sqlalchemy.orm import Session

from taskcadence.api.api_models import (
    GenerateInstancesResponse,
    InstanceListResponse,
    InstanceResponse,
    InstanceUpdateRequest,
    PreviewRequest,
    PreviewResponse,
    RecurrenceRuleResponse,
    TaskCreateRequest,
    TaskListResponse,
    TaskResponse,
)
from taskcadence.database.database import get_db, init_db
from taskcadence.database.models import RecurrenceRuleDB
from taskcadence.database.recurrence_rule_repository import RecurrenceRuleRepository, RuleAlreadyExistsError
from taskcadence.database.repository import TaskRepository
from taskcadence.database.task_instance_repository import TaskInstanceRepository
from taskcadence.engine.errors import CalculationError, RecurrenceValidationError
from taskcadence.engine.materialize import materialize
from taskcadence.models.constants import (
    DEFAULT_HORIZON_DAYS,
    DEFAULT_MAX_INSTANCES,
    MAX_HORIZON_DAYS,
    MAX_INSTANCES_LIMIT,
)
from taskcadence.models.recurrence import RecurrenceRule, RecurrenceRuleUpdate
from taskcadence.models.task import NonRecurring, Recurring, Task, TaskStatus
from taskcadence.recurrence.instances import NotRecurringError, TaskNotFoundError, generate_instances

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="taskcadence API",
    description="Recurring tasks: recurrence rules and materialized occurrences",
    version="0.1.0",
    lifespan=lifespan,
)


def _rule_error(e: RecurrenceValidationError) -> HTTPException:
    logger.warning(f"Rejected recurrence rule: {e.violation.value} ({e.field}={e.value!r})")
    return HTTPException(status_code=400, detail=e.to_dict())


def _calculation_error(e: CalculationError) -> HTTPException:
    logger.error(f"Could not compute next occurrence: {str(e)}")
    return HTTPException(status_code=422, detail=f"Could not compute next occurrence: {str(e)}")


def _rule_response(row: RecurrenceRuleDB) -> RecurrenceRuleResponse:
    return RecurrenceRuleResponse(
        id=row.id,
        task_id=row.task_id,
        rule=row.to_rule(),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _require_task(db: Session, task_id: str) -> None:
    if not TaskRepository(db).exists(task_id):
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


@app.post("/tasks", response_model=TaskResponse, status_code=201)
def create_task(request: TaskCreateRequest, db: Session = Depends(get_db)):
    """Create a task, optionally recurring."""
    now = datetime.utcnow()
    task_id = str(uuid.uuid4())
    recurrence = Recurring(rule=request.recurrence) if request.recurrence is not None else NonRecurring()
    task = Task(
        id=task_id,
        title=request.title,
        notes=request.notes,
        status=TaskStatus.OPEN,
        due_date=request.due_date,
        created_at=now,
        updated_at=now,
        recurrence=recurrence,
    )
    try:
        created = TaskRepository(db).create(task)
    except RecurrenceValidationError as e:
        raise _rule_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create task: {str(e)}")
    return TaskResponse(task=created)


@app.get("/tasks", response_model=TaskListResponse)
def list_tasks(db: Session = Depends(get_db)):
    """List active tasks (newest first)."""
    tasks = TaskRepository(db).get_all()
    return TaskListResponse(tasks=tasks, count=len(tasks))


@app.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(task_id: str, db: Session = Depends(get_db)):
    task = TaskRepository(db).get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return TaskResponse(task=task)


@app.delete("/tasks/{task_id}", status_code=204)
def delete_task(task_id: str, db: Session = Depends(get_db)):
    """Soft delete a task; its recurrence rule goes with it."""
    if not TaskRepository(db).soft_delete(task_id):
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return Response(status_code=204)


@app.post("/tasks/{task_id}/recurrence", response_model=RecurrenceRuleResponse, status_code=201)
def create_recurrence_rule(task_id: str, rule: RecurrenceRule, db: Session = Depends(get_db)):
    """Make a task recurring."""
    _require_task(db, task_id)
    try:
        row = RecurrenceRuleRepository(db).create_for_task(task_id, rule)
    except RecurrenceValidationError as e:
        raise _rule_error(e)
    except RuleAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _rule_response(row)


@app.get("/tasks/{task_id}/recurrence", response_model=RecurrenceRuleResponse)
def get_recurrence_rule(task_id: str, db: Session = Depends(get_db)):
    _require_task(db, task_id)
    row = RecurrenceRuleRepository(db).get_for_task(task_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Recurrence rule not found")
    return _rule_response(row)


@app.put("/tasks/{task_id}/recurrence", response_model=RecurrenceRuleResponse)
def update_recurrence_rule(task_id: str, update: RecurrenceRuleUpdate, db: Session = Depends(get_db)):
    """Partially update a task's rule; the merged rule must still be valid."""
    _require_task(db, task_id)
    try:
        row = RecurrenceRuleRepository(db).update_for_task(task_id, update)
    except RecurrenceValidationError as e:
        raise _rule_error(e)
    except ValueError as e:
        # Merged rule failed model parsing (e.g. end_condition set to null).
        raise HTTPException(status_code=422, detail=str(e))
    if row is None:
        raise HTTPException(status_code=404, detail="Recurrence rule not found")
    return _rule_response(row)


@app.delete("/tasks/{task_id}/recurrence", status_code=204)
def delete_recurrence_rule(task_id: str, db: Session = Depends(get_db)):
    """Turn recurrence off for a task."""
    _require_task(db, task_id)
    if not RecurrenceRuleRepository(db).delete_for_task(task_id):
        raise HTTPException(status_code=404, detail="Recurrence rule not found")
    return Response(status_code=204)


@app.post("/tasks/{task_id}/instances/generate", response_model=GenerateInstancesResponse)
def generate_task_instances(
    task_id: str,
    max_instances: int = Query(DEFAULT_MAX_INSTANCES, alias="max", ge=0, le=MAX_INSTANCES_LIMIT),
    days: int = Query(DEFAULT_HORIZON_DAYS, ge=0, le=MAX_HORIZON_DAYS),
    db: Session = Depends(get_db),
):
    """Materialize the next window of occurrences for a recurring task."""
    try:
        result = generate_instances(db, task_id, max_instances=max_instances, horizon_days=days)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotRecurringError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecurrenceValidationError as e:
        raise _rule_error(e)
    except CalculationError as e:
        raise _calculation_error(e)
    return GenerateInstancesResponse(
        instances=result.created,
        created_count=len(result.created),
        skipped_existing=result.skipped_existing,
        message=f"Generated {len(result.created)} instances",
    )


@app.get("/tasks/{task_id}/instances", response_model=InstanceListResponse)
def list_task_instances(task_id: str, db: Session = Depends(get_db)):
    _require_task(db, task_id)
    instances = TaskInstanceRepository(db).list_for_task(task_id)
    return InstanceListResponse(instances=instances, count=len(instances))


@app.patch("/tasks/instances/{instance_id}", response_model=InstanceResponse)
def update_task_instance(instance_id: str, request: InstanceUpdateRequest, db: Session = Depends(get_db)):
    instance = TaskInstanceRepository(db).update_status(instance_id, request.status)
    if instance is None:
        raise HTTPException(status_code=404, detail="Instance not found")
    return InstanceResponse(instance=instance)


@app.delete("/tasks/instances/{instance_id}", status_code=204)
def delete_task_instance(instance_id: str, db: Session = Depends(get_db)):
    if not TaskInstanceRepository(db).delete(instance_id):
        raise HTTPException(status_code=404, detail="Instance not found")
    return Response(status_code=204)


@app.post("/recurrence/preview", response_model=PreviewResponse)
def preview_recurrence(request: PreviewRequest):
    """Materialize a rule without storing anything."""
    try:
        dates = materialize(
            request.rule,
            request.start,
            max_instances=request.max_instances,
            horizon=timedelta(days=request.horizon_days),
        )
    except RecurrenceValidationError as e:
        raise _rule_error(e)
    except CalculationError as e:
        raise _calculation_error(e)
    return PreviewResponse(dates=dates, count=len(dates))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
