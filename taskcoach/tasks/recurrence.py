"""Celery tasks for recurring task generation."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from taskcoach.celery_app import app as celery_app
from taskcoach.database import SessionLocal
from taskcoach.services.recurrence import RecurrenceEngine

logger = logging.getLogger(__name__)


@celery_app.task
def generate_recurring_tasks() -> dict:
    """Materialize the next week of instances for every recurring template.

    Returns:
        dict with generation statistics
    """
    db: Session = SessionLocal()

    try:
        return RecurrenceEngine(db).run(datetime.now(UTC))

    except Exception as e:
        logger.error(f"Error generating recurring tasks: {e}", exc_info=True)
        db.rollback()
        return {"error": str(e)}

    finally:
        db.close()

