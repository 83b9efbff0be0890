"""Pytest configuration and fixtures."""

import os
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from taskcoach.api.dependencies import get_now
from taskcoach.database import Base, get_db
from taskcoach.main import app
from taskcoach.models import CoachingRelationship, List, Task, User
from taskcoach.models.enums import CoachingStatus, TaskPriority, TaskStatus, UserRole
from taskcoach.services.notification_service import NotificationDispatcher

# Tuesday, 2026-03-10 12:00 UTC
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)

# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/taskcoach", "/taskcoach_test")
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database and clock overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: NOW
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def dispatcher():
    """A dispatcher double that records every notification."""
    return MagicMock(spec=NotificationDispatcher)


@pytest.fixture
def user(db):
    """The client who owns the task list."""
    client_user = User(email="casey@example.com", name="Casey", timezone="UTC")
    db.add(client_user)
    db.commit()
    return client_user


@pytest.fixture
def coach(db, user):
    """An active coach of ``user`` who wants every alert."""
    coach_user = User(
        email="coach@example.com",
        name="Coach Robin",
        role=UserRole.COACH,
        phone_number="+15550100",
    )
    db.add(coach_user)
    db.flush()
    db.add(
        CoachingRelationship(
            coach_id=coach_user.id,
            client_id=user.id,
            status=CoachingStatus.ACTIVE,
            notify_on_missed_deadline=True,
            notify_on_completion=True,
        )
    )
    db.commit()
    return coach_user


@pytest.fixture
def task_list(db, user):
    todo = List(name="Daily", owner_id=user.id)
    db.add(todo)
    db.commit()
    return todo


@pytest.fixture
def make_task(db, task_list, user):
    """Factory for tasks in ``task_list``; keyword arguments override defaults."""

    def _make(**overrides) -> Task:
        fields = {
            "list_id": task_list.id,
            "creator_id": user.id,
            "title": "Write report",
            "due_at": NOW,
            "status": TaskStatus.PENDING,
            "priority": TaskPriority.MEDIUM,
            "can_be_snoozed": False,
            "notification_interval_minutes": 10,
        }
        fields.update(overrides)
        task = Task(**fields)
        db.add(task)
        db.commit()
        return task

    return _make
