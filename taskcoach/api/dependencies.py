"""FastAPI dependencies for services and the clock."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from taskcoach.database import get_db
from taskcoach.errors import NotFoundError
from taskcoach.models import Task
from taskcoach.services.completion import TaskCompletionService
from taskcoach.services.reschedule import TaskRescheduleService


def get_now() -> datetime:
    """Current time; overridden in tests."""
    return datetime.now(UTC)


def get_task(task_id: int, db: Annotated[Session, Depends(get_db)]) -> Task:
    """Get a live (not soft-deleted) task or raise NotFoundError."""
    task = db.query(Task).filter(Task.id == task_id, Task.not_deleted()).first()
    if task is None:
        raise NotFoundError("Task not found")
    return task


def get_completion_service(
    db: Annotated[Session, Depends(get_db)],
) -> TaskCompletionService:
    """Get completion service with its post-completion handler."""
    return TaskCompletionService(db)


def get_reschedule_service(
    db: Annotated[Session, Depends(get_db)],
) -> TaskRescheduleService:
    """Get reschedule service."""
    return TaskRescheduleService(db)
