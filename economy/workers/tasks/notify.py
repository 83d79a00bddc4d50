"""
Best-effort notifications that follow a committed unlock.
Failures are logged and retried a few times; they never touch the ledger.
"""
import logging

import httpx

from economy.core.celery_app import celery_app
from economy.services.notifications.client import NotificationClient
from economy.utils.metrics import notifications_failed_total

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 5


@celery_app.task(bind=True, name="economy.workers.tasks.notify.notify_content_unlocked", max_retries=MAX_RETRIES)
def notify_content_unlocked(self, account_id: str, content_id: str) -> dict:
    client = NotificationClient()
    try:
        if not client.enabled:
            logger.info("content_unlocked_notification_skipped", extra={"account_id": account_id, "content_id": content_id})
            return {"sent": False, "reason": "disabled"}
        client.send("content_unlocked", {"account_id": account_id, "content_id": content_id})
        return {"sent": True}
    except httpx.HTTPError as e:
        if self.request.retries < MAX_RETRIES:
            raise self.retry(exc=e, countdown=RETRY_DELAY_SECONDS)
        notifications_failed_total.inc()
        logger.warning(
            "content_unlocked_notification_failed",
            extra={"account_id": account_id, "content_id": content_id, "error": str(e)},
        )
        return {"sent": False, "reason": "error"}
    finally:
        client.close()
