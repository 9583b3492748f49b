"""Pytest fixtures and configuration for taskcadence tests."""

import os

# Point the application engine at an in-memory DB before any taskcadence import.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
import uuid

from taskcadence.database.database import Base, get_db
from taskcadence.database import models  # noqa: F401  (registers tables)
from taskcadence.database.repository import TaskRepository
from taskcadence.database.recurrence_rule_repository import RecurrenceRuleRepository
from taskcadence.database.task_instance_repository import TaskInstanceRepository
from taskcadence.models.recurrence import NeverEnds, RecurrencePattern, RecurrenceRule, Weekday
from taskcadence.models.task import NonRecurring, Recurring, Task, TaskStatus


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    Foreign keys are enabled by the connect listener in taskcadence.database.database.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def task_repository(db_session: Session):
    return TaskRepository(db_session)


@pytest.fixture
def rule_repository(db_session: Session):
    return RecurrenceRuleRepository(db_session)


@pytest.fixture
def instance_repository(db_session: Session):
    return TaskInstanceRepository(db_session)


@pytest.fixture
def daily_rule():
    return RecurrenceRule(pattern=RecurrencePattern.DAILY, interval=1, end_condition=NeverEnds())


@pytest.fixture
def weekly_rule():
    """Mon/Wed/Fri every week."""
    return RecurrenceRule(
        pattern=RecurrencePattern.WEEKLY,
        interval=1,
        days_of_week=[Weekday.MO, Weekday.WE, Weekday.FR],
    )


@pytest.fixture
def sample_task_base():
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    now = datetime.utcnow()
    return {
        "id": str(uuid.uuid4()),
        "title": "Test Task",
        "notes": "Test notes",
        "status": TaskStatus.OPEN,
        "due_date": datetime(2024, 1, 1, 9, 0),
        "created_at": now,
        "updated_at": now,
        "recurrence": NonRecurring(),
    }


@pytest.fixture
def sample_task(sample_task_base):
    """Create a sample non-recurring Task object for testing."""
    return Task(**sample_task_base)


@pytest.fixture
def recurring_task(sample_task_base, daily_rule):
    """Create a daily recurring Task object for testing."""
    return Task(**{**sample_task_base, "id": str(uuid.uuid4()), "title": "Water plants", "recurrence": Recurring(rule=daily_rule)})


@pytest.fixture
def test_client(db_session: Session):
    """Create a FastAPI test client with overridden database dependency."""
    from taskcadence.api.app import app

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()
