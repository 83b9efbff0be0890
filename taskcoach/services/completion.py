"""Task completion: the missed-reason gate and the post-completion effects."""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session

from taskcoach.errors import ValidationError
from taskcoach.models import Task
from taskcoach.models.enums import TaskStatus
from taskcoach.services.escalation import clear_escalation
from taskcoach.services.notification_service import NotificationDispatcher, dispatch_safely
from taskcoach.services.recurrence import RecurrenceEngine
from taskcoach.services.streaks import StreakCalculator
from taskcoach.timeutils import as_utc

logger = logging.getLogger(__name__)


class CompletionHandler:
    """Runs the ordered post-completion effects for a task.

    Each effect commits on its own; a failing effect is logged and rolled
    back without stopping the ones after it.
    """

    def __init__(
        self,
        db: Session,
        dispatcher: NotificationDispatcher | None = None,
        recurrence: RecurrenceEngine | None = None,
        streaks: StreakCalculator | None = None,
    ) -> None:
        self.db = db
        self.dispatcher = dispatcher or NotificationDispatcher(db)
        self.recurrence = recurrence or RecurrenceEngine(db, self.dispatcher)
        self.streaks = streaks or StreakCalculator(db)

    def effects(self, cascade_parent: bool = True) -> list[tuple[str, Callable]]:
        effects = [
            ("clear_escalation", self.clear_escalation),
            ("notify_coaches", self.notify_coaches),
            ("generate_next_instance", self.generate_next_instance),
        ]
        if cascade_parent:
            effects.append(("complete_parent", self.complete_parent))
        effects.append(("update_streak", self.update_streak))
        return effects

    def handle(self, task: Task, now: datetime, cascade_parent: bool = True) -> dict:
        """Run every effect in order and report which ones succeeded."""
        task_id = task.id
        logger.info(f"Processing completion for task {task_id}")

        results = {}
        for name, effect in self.effects(cascade_parent):
            try:
                results[name] = bool(effect(task, now))
                self.db.commit()
            except Exception as e:
                logger.error(
                    f"Completion effect {name} failed for task {task_id}: {e}", exc_info=True
                )
                self.db.rollback()
                results[name] = False
        return results

    def clear_escalation(self, task: Task, now: datetime) -> bool:
        cleared = clear_escalation(task)
        if cleared:
            logger.info(f"Cleared escalation for task {task.id}")
        return cleared

    def notify_coaches(self, task: Task, now: datetime) -> bool:
        if not task.created_by_coach:
            return False
        return dispatch_safely(self.dispatcher.task_completed, task)

    def generate_next_instance(self, task: Task, now: datetime) -> bool:
        template = task.recurring_template
        if template is None or not template.is_template or template.is_deleted:
            return False

        instance = self.recurrence.generate_next_instance(template, now, after=task.due_at)
        if instance is not None:
            logger.info(f"Generated next recurring instance {instance.id}")
        return instance is not None

    def complete_parent(self, task: Task, now: datetime) -> bool:
        """Complete the immediate parent once all of its subtasks are done."""
        parent = task.parent_task
        if parent is None or not parent.is_active:
            return False

        siblings = [subtask for subtask in parent.subtasks if not subtask.is_deleted]
        if not all(subtask.is_done for subtask in siblings):
            return False

        parent.complete(now)
        self.db.commit()
        logger.info(f"Auto-completed parent task {parent.id}")

        # One level only: the parent's own parent is left alone
        self.handle(parent, now, cascade_parent=False)
        return True

    def update_streak(self, task: Task, now: datetime) -> bool:
        self.streaks.update_streak(task.owner, now)
        return True


class TaskCompletionService:
    """Completes and reopens tasks, enforcing the missed-reason gate."""

    def __init__(self, db: Session, handler: CompletionHandler | None = None) -> None:
        self.db = db
        self.handler = handler or CompletionHandler(db)

    def complete(self, task: Task, now: datetime, missed_reason: str | None = None) -> Task:
        """Mark ``task`` done and run the post-completion effects.

        Raises:
            ValidationError: ``missing_reason`` when the task is overdue,
                requires an explanation, and none was given.
        """
        if task.is_done:
            return task

        reason = (missed_reason or "").strip()
        if self.requires_reason(task, now) and not reason:
            raise ValidationError(
                "This overdue task requires an explanation", code="missing_reason"
            )

        if reason:
            task.missed_reason = reason
            task.missed_reason_submitted_at = now
        task.complete(now)
        self.db.commit()

        self.handler.handle(task, now)
        self.db.refresh(task)
        return task

    def reopen(self, task: Task) -> Task:
        """Move a completed task back to pending."""
        if task.status != TaskStatus.DONE:
            return task
        task.status = TaskStatus.PENDING
        task.completed_at = None
        self.db.commit()
        self.db.refresh(task)
        return task

    @staticmethod
    def requires_reason(task: Task, now: datetime) -> bool:
        due_at = as_utc(task.due_at)
        return bool(task.requires_explanation_if_missed) and due_at is not None and due_at < now
