"""Celery task for due-soon reminders."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from taskcoach.celery_app import app as celery_app
from taskcoach.database import SessionLocal
from taskcoach.services.reminders import ReminderScheduler

logger = logging.getLogger(__name__)


@celery_app.task
def send_task_reminders() -> dict:
    """Send reminders for tasks inside their notification window.

    Returns:
        dict with processing statistics
    """
    db: Session = SessionLocal()

    try:
        return ReminderScheduler(db).run(datetime.now(UTC))

    except Exception as e:
        logger.error(f"Error sending task reminders: {e}", exc_info=True)
        db.rollback()
        return {"error": str(e)}

    finally:
        db.close()
