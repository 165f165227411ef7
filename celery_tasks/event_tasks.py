from celery_config import celery_app
from data.database import AnalyticsEvent, SessionLocal
from sqlalchemy.exc import OperationalError
from typing import Any
from datetime import datetime
from config import config # initialize logging
import logging

logger = logging.getLogger(__name__)

def get_db_session():
    """Provides a fresh database session for asynchronous task execution."""
    try:
        return SessionLocal()
    except Exception as e:
        logger.error("Failed to create database session in Celery task: %s", e)
        return None

# results are not needed by the API, don't store them
@celery_app.task(bind=True, max_retries=3, default_retry_delay=30, ignore_result=True)
def insert_events_to_db(self, rows: list[dict[str, Any]]):
    """
    Bulk inserts a batch of SDK analytics events.
    A batch is one transaction: it is stored whole or retried whole.
    """
    db = None
    try:
        db = get_db_session()
        if not db:
            # Raise an exception to potentially trigger Celery retry
            raise ConnectionError("Could not establish database session.")

        db.add_all([
            AnalyticsEvent(**{**row, "timestamp": datetime.fromisoformat(row["timestamp"])})
            for row in rows
        ])
        db.commit()

        logger.info("Task %s[%s]. Inserted %d events for organization %s.",
                    self.name, self.request.id, len(rows), rows[0]["organization_id"] if rows else None)
        return len(rows)
    except (ConnectionError, OperationalError) as exc:
        if db:
            db.rollback()
        logger.error("Database unavailable in Celery task. Retrying...")
        raise self.retry(exc=exc)
    except Exception as exc:
        if db:
            db.rollback()
        logger.error("Failed to insert %d events to DB: %s", len(rows), exc)
        raise  # re-raise so Celery marks FAILURE and we can debug it

    finally:
        if db:
            db.close()
