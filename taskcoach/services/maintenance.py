"""Housekeeping for notification logs and stale escalation rows."""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from taskcoach.config import get_settings
from taskcoach.models import NotificationLog, Task, TaskEscalation
from taskcoach.services.locks import redis_lock

logger = logging.getLogger(__name__)

CLEANUP_LOCK = "maintenance:cleanup_old_records"


def cleanup_old_records(db: Session, now: datetime) -> dict:
    """Delete old notification logs and escalations of long-completed tasks."""
    settings = get_settings()
    log_cutoff = now - timedelta(days=settings.notification_log_retention_days)
    escalation_cutoff = now - timedelta(days=settings.escalation_retention_days)

    deleted_logs = (
        db.query(NotificationLog)
        .filter(NotificationLog.created_at < log_cutoff)
        .delete(synchronize_session=False)
    )

    stale_task_ids = db.query(Task.id).filter(
        Task.completed_at.is_not(None),
        Task.completed_at < escalation_cutoff,
    )
    deleted_escalations = (
        db.query(TaskEscalation)
        .filter(TaskEscalation.task_id.in_(stale_task_ids.scalar_subquery()))
        .delete(synchronize_session=False)
    )
    db.commit()

    logger.info(
        f"Deleted {deleted_logs} old notification logs "
        f"and {deleted_escalations} stale escalations"
    )
    return {"notification_logs": deleted_logs, "escalations": deleted_escalations}


def run_cleanup(db: Session, now: datetime) -> dict:
    """Run the cleanup unless another scheduler replica already is."""
    ttl = get_settings().maintenance_lock_ttl_seconds
    with redis_lock(CLEANUP_LOCK, ttl=ttl) as acquired:
        if not acquired:
            return {"skipped": True}
        return cleanup_old_records(db, now)
