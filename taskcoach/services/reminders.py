"""Reminders for tasks that are about to come due."""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskcoach.errors import NotFoundError, TransientDispatchError
from taskcoach.models import Task
from taskcoach.models.enums import EscalationLevel, TaskStatus
from taskcoach.services.notification_service import NotificationDispatcher, dispatch_safely
from taskcoach.timeutils import as_utc

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """Selects tasks inside their own notification window and reminds once per window."""

    def __init__(self, db: Session, dispatcher: NotificationDispatcher | None = None) -> None:
        self.db = db
        self.dispatcher = dispatcher or NotificationDispatcher(db)

    def _open_tasks(self):
        return self.db.query(Task).filter(
            Task.status == TaskStatus.PENDING,
            Task.not_deleted(),
            Task.is_template.is_(False),
            Task.due_at.is_not(None),
        )

    def tasks_needing_reminder(self, now: datetime) -> list[Task]:
        """Open tasks with ``0 <= due_at - now <= notification_interval_minutes``.

        Evaluated against current state on every call, so a task completed or
        deleted since the last sweep never shows up.
        """
        widest = self._open_tasks().with_entities(func.max(Task.notification_interval_minutes))
        max_interval = widest.scalar()
        if not max_interval:
            return []

        candidates = (
            self._open_tasks()
            .filter(
                Task.due_at >= now,
                Task.due_at <= now + timedelta(minutes=max_interval),
            )
            .order_by(Task.due_at, Task.id)
            .all()
        )
        return [task for task in candidates if self._in_window(task, now)]

    def run(self, now: datetime) -> dict:
        """Send one reminder per task per notification window."""
        stats = {"eligible": 0, "sent": 0, "already_sent": 0, "failed": 0}

        task_ids = [task.id for task in self.tasks_needing_reminder(now)]
        stats["eligible"] = len(task_ids)

        for task_id in task_ids:
            try:
                sent = self.remind(task_id, now)
            except NotFoundError:
                logger.warning(f"Task {task_id} vanished before its reminder, skipping")
                self.db.rollback()
                continue
            except TransientDispatchError as e:
                logger.warning(e.message)
                stats["failed"] += 1
                continue
            except Exception as e:
                logger.error(f"Error sending reminder for task {task_id}: {e}", exc_info=True)
                self.db.rollback()
                stats["failed"] += 1
                continue

            stats["sent" if sent else "already_sent"] += 1

        logger.info(f"Reminder processing complete: {stats}")
        return stats

    def remind(self, task_id: int, now: datetime) -> bool:
        task = self.db.get(Task, task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        if not task.is_active or not self._in_window(task, now):
            return False

        window_start = as_utc(task.due_at) - timedelta(minutes=task.notification_interval_minutes)
        sent_at = as_utc(task.reminder_sent_at)
        if sent_at is not None and sent_at >= window_start:
            return False

        previous_sent_at = task.reminder_sent_at
        task.reminder_sent_at = now
        self.db.commit()

        if not dispatch_safely(self.dispatcher.send_reminder, task, EscalationLevel.NORMAL):
            # Reopen the window so the next sweep tries again
            task.reminder_sent_at = previous_sent_at
            self.db.commit()
            raise TransientDispatchError(f"Reminder for task {task.id} was not delivered")

        logger.info(f"Reminder sent for task {task.id}")
        return True

    @staticmethod
    def _in_window(task: Task, now: datetime) -> bool:
        seconds_until_due = (as_utc(task.due_at) - now).total_seconds()
        return 0 <= seconds_until_due <= task.notification_interval_minutes * 60
