"""Celery task for periodic housekeeping."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from taskcoach.celery_app import app as celery_app
from taskcoach.database import SessionLocal
from taskcoach.services.maintenance import run_cleanup

logger = logging.getLogger(__name__)


@celery_app.task
def cleanup_old_records() -> dict:
    """Prune old notification logs and stale escalations.

    Guarded by a Redis lock so only one scheduler replica runs it.
    """
    db: Session = SessionLocal()

    try:
        return run_cleanup(db, datetime.now(UTC))

    except Exception as e:
        logger.error(f"Error during cleanup: {e}", exc_info=True)
        db.rollback()
        return {"error": str(e)}

    finally:
        db.close()
