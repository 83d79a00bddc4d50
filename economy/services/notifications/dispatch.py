"""
Fire-and-forget dispatch of side effects that follow a committed economy mutation.
Nothing here may raise into the caller.
"""
import logging

from economy.utils.metrics import notifications_failed_total

logger = logging.getLogger(__name__)


def dispatch_content_unlocked(account_id: str, content_id: str) -> None:
    try:
        from economy.workers.tasks.notify import notify_content_unlocked

        notify_content_unlocked.delay(account_id, content_id)
    except Exception:
        notifications_failed_total.inc()
        logger.exception(
            "notification_dispatch_failed",
            extra={"account_id": account_id, "content_id": content_id},
        )
