"""Rescheduling a task to a new due time."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from taskcoach.errors import ValidationError
from taskcoach.models import RescheduleEvent, Task

logger = logging.getLogger(__name__)


class TaskRescheduleService:
    """Moves a task's due time, logging exactly one RescheduleEvent per move."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def reschedule(
        self,
        task: Task,
        new_due_at: datetime | None,
        reason: str | None,
        user_id: int | None = None,
        now: datetime | None = None,
    ) -> Task:
        """Set a new due time.

        Raises:
            ValidationError: ``missing_due_at`` or ``missing_reason``; nothing
                is written in either case.
        """
        if new_due_at is None:
            raise ValidationError("new_due_at is required", code="missing_due_at")

        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("reason is required", code="missing_reason")

        self.db.add(
            RescheduleEvent(
                task_id=task.id,
                user_id=user_id,
                previous_due_at=task.due_at,
                new_due_at=new_due_at,
                reason=reason,
                created_at=now or datetime.now(UTC),
            )
        )
        task.due_at = new_due_at
        # A new due time opens a new reminder window
        task.reminder_sent_at = None
        self.db.commit()
        self.db.refresh(task)

        logger.info(f"Task {task.id} rescheduled to {new_due_at} ({reason})")
        return task
