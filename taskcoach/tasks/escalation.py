"""Celery task for the overdue escalation sweep."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from taskcoach.celery_app import app as celery_app
from taskcoach.database import SessionLocal
from taskcoach.services.escalation import EscalationEngine

logger = logging.getLogger(__name__)


@celery_app.task
def process_escalations() -> dict:
    """Escalate overdue, non-snoozable tasks.

    This task runs every minute via celery-beat.

    Returns:
        dict with processing statistics
    """
    db: Session = SessionLocal()

    try:
        return EscalationEngine(db).run(datetime.now(UTC))

    except Exception as e:
        logger.error(f"Error processing escalations: {e}", exc_info=True)
        db.rollback()
        return {"error": str(e)}

    finally:
        db.close()
