"""Escalation sweep for overdue tasks that cannot be snoozed."""

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskcoach.errors import NotFoundError
from taskcoach.models import Task, TaskEscalation
from taskcoach.models.enums import EscalationLevel, TaskPriority, TaskStatus
from taskcoach.services.notification_service import NotificationDispatcher, dispatch_safely
from taskcoach.timeutils import as_utc

logger = logging.getLogger(__name__)

# Forces the first notification for a task that was never notified
NEVER_NOTIFIED = float("inf")

# (minutes overdue strictly above, level), most severe first
ESCALATION_THRESHOLDS: dict[TaskPriority, tuple[tuple[int, EscalationLevel], ...]] = {
    TaskPriority.URGENT: (
        (120, EscalationLevel.BLOCKING),
        (60, EscalationLevel.CRITICAL),
        (30, EscalationLevel.WARNING),
    ),
    TaskPriority.HIGH: (
        (240, EscalationLevel.BLOCKING),
        (120, EscalationLevel.CRITICAL),
        (60, EscalationLevel.WARNING),
    ),
    TaskPriority.MEDIUM: (
        (240, EscalationLevel.CRITICAL),
        (120, EscalationLevel.WARNING),
    ),
    TaskPriority.LOW: (
        (240, EscalationLevel.CRITICAL),
        (120, EscalationLevel.WARNING),
    ),
}


def escalation_level_for(priority: TaskPriority, minutes_overdue: float) -> EscalationLevel:
    """Target escalation level for a task of ``priority`` this far overdue."""
    for threshold, level in ESCALATION_THRESHOLDS[priority]:
        if minutes_overdue > threshold:
            return level
    return EscalationLevel.NORMAL


def clear_escalation(task: Task) -> bool:
    """Reset a task's escalation state. Returns False if it had none."""
    if task.escalation is None:
        return False
    task.escalation.reset()
    return True


class EscalationEngine:
    """Raises and maintains escalation state for overdue tasks.

    Every write is either a compare-and-set on the notification slot or a
    one-way flag, so overlapping or repeated sweeps converge on the same
    state.
    """

    def __init__(self, db: Session, dispatcher: NotificationDispatcher | None = None) -> None:
        self.db = db
        self.dispatcher = dispatcher or NotificationDispatcher(db)

    def overdue_task_ids(self, now: datetime) -> list[int]:
        """IDs of pending, non-snoozable tasks whose due time has passed."""
        rows = (
            self.db.query(Task.id)
            .filter(
                Task.status == TaskStatus.PENDING,
                Task.not_deleted(),
                Task.is_template.is_(False),
                Task.can_be_snoozed.is_(False),
                Task.due_at.is_not(None),
                Task.due_at < now,
            )
            .order_by(Task.id)
            .all()
        )
        return [task_id for (task_id,) in rows]

    def run(self, now: datetime) -> dict:
        """Process every overdue task once, isolating failures per task."""
        stats = {
            "processed": 0,
            "notified": 0,
            "escalated": 0,
            "coach_alerts": 0,
            "blocking_started": 0,
            "skipped": 0,
            "failed": 0,
        }

        task_ids = self.overdue_task_ids(now)
        logger.info(f"Found {len(task_ids)} overdue un-snoozable tasks")

        for task_id in task_ids:
            try:
                outcome = self.process_task(task_id, now)
            except NotFoundError:
                logger.warning(f"Task {task_id} vanished before escalation, skipping")
                self.db.rollback()
                stats["skipped"] += 1
                continue
            except Exception as e:
                logger.error(f"Error escalating task {task_id}: {e}", exc_info=True)
                self.db.rollback()
                stats["failed"] += 1
                continue

            stats["processed"] += 1
            for key in ("notified", "escalated", "coach_alerts", "blocking_started", "skipped"):
                stats[key] += int(outcome.get(key, False))

        logger.info(f"Escalation processing complete: {stats}")
        return stats

    def process_task(self, task_id: int, now: datetime) -> dict:
        """Escalate a single task if its notification interval has elapsed."""
        task = self.db.get(Task, task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")

        # Re-check against the fresh row: completion always wins
        if task.can_be_snoozed or task.is_template or not task.is_overdue(now):
            return {"skipped": True}

        escalation = self._get_or_create_escalation(task)

        last_notified = as_utc(escalation.last_notification_at)
        if last_notified is None:
            minutes_since_last = NEVER_NOTIFIED
        else:
            minutes_since_last = (now - last_notified).total_seconds() / 60.0

        if minutes_since_last < task.notification_interval_minutes:
            return {}

        if not self._claim_slot(escalation.id, escalation.last_notification_at, now):
            logger.info(f"Notification slot for task {task.id} already claimed, skipping")
            self.db.rollback()
            return {"skipped": True}
        self.db.refresh(escalation)

        if escalation.became_overdue_at is None:
            escalation.became_overdue_at = now

        previous_level = escalation.escalation_level
        target_level = escalation_level_for(task.priority, task.minutes_overdue(now))
        escalated = target_level.is_above(previous_level)
        if escalated:
            logger.info(
                f"Task {task.id} escalated from {previous_level.value} to {target_level.value}"
            )
            escalation.escalation_level = target_level
        level = escalation.escalation_level

        alert_coaches = False
        # Critical and blocking both alert coaches, once
        if not escalation.coaches_notified and not EscalationLevel.CRITICAL.is_above(level):
            escalation.coaches_notified = True
            escalation.coaches_notified_at = now
            alert_coaches = True

        start_blocking = False
        if level == EscalationLevel.BLOCKING and not escalation.blocking_app:
            logger.warning(f"Blocking app for task {task.id}")
            escalation.blocking_app = True
            escalation.blocking_started_at = now
            start_blocking = True

        self.db.commit()

        dispatch_safely(self.dispatcher.send_reminder, task, level)
        if start_blocking:
            dispatch_safely(self.dispatcher.app_blocking_started, task)
        if alert_coaches:
            dispatch_safely(self.dispatcher.alert_coaches_of_overdue, task)

        return {
            "notified": True,
            "escalated": escalated,
            "coach_alerts": alert_coaches,
            "blocking_started": start_blocking,
        }

    def _get_or_create_escalation(self, task: Task) -> TaskEscalation:
        if task.escalation is not None:
            return task.escalation

        task_id = task.id
        self.db.add(
            TaskEscalation(
                task_id=task_id,
                escalation_level=EscalationLevel.NORMAL,
                notification_count=0,
            )
        )
        try:
            self.db.commit()
        except IntegrityError:
            # Another sweep created it first
            self.db.rollback()
        return self.db.query(TaskEscalation).filter(TaskEscalation.task_id == task_id).one()

    def _claim_slot(self, escalation_id: int, seen_at: datetime | None, now: datetime) -> bool:
        """Compare-and-set the notification slot last seen at ``seen_at``."""
        if seen_at is None:
            unchanged = TaskEscalation.last_notification_at.is_(None)
        else:
            unchanged = TaskEscalation.last_notification_at == seen_at

        result = self.db.execute(
            update(TaskEscalation)
            .where(TaskEscalation.id == escalation_id, unchanged)
            .values(
                notification_count=TaskEscalation.notification_count + 1,
                last_notification_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
