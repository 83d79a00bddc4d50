"""
Celery periodic task: delete AdWatchRecords older than the retention window.
"""
import logging
from datetime import timedelta

from economy.core.celery_app import celery_app
from economy.core.config import settings
from economy.db.session import SessionLocal
from economy.services.fraud.guard import FraudGuard

logger = logging.getLogger(__name__)


@celery_app.task(name="economy.workers.tasks.prune_ad_watches.prune_ad_watch_records")
def prune_ad_watch_records() -> dict:
    db = SessionLocal()
    try:
        removed = FraudGuard(db).prune(timedelta(hours=settings.ad_watch_retention_hours))
        return {"removed": removed}
    except Exception:
        db.rollback()
        logger.exception("prune_ad_watch_records_error")
        return {"removed": 0, "error": "exception"}
    finally:
        db.close()
