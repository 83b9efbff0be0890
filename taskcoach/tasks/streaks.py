"""Celery task for the daily streak rollup."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from taskcoach.celery_app import app as celery_app
from taskcoach.database import SessionLocal
from taskcoach.services.streaks import StreakCalculator

logger = logging.getLogger(__name__)


@celery_app.task
def update_streaks() -> dict:
    """Roll every user's completion streak forward.

    Runs once a day via celery-beat.
    """
    db: Session = SessionLocal()

    try:
        return StreakCalculator(db).run(datetime.now(UTC))

    except Exception as e:
        logger.error(f"Error updating streaks: {e}", exc_info=True)
        db.rollback()
        return {"error": str(e)}

    finally:
        db.close()
