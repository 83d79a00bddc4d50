"""
Notification dispatcher client (sync httpx, used from Celery workers).
"""
import logging

import httpx

from economy.core.config import settings

logger = logging.getLogger(__name__)


class NotificationClient:
    def __init__(self, webhook_url: str | None = None, timeout: float | None = None) -> None:
        self._webhook_url = webhook_url if webhook_url is not None else settings.notification_webhook_url
        self._client = httpx.Client(timeout=timeout if timeout is not None else settings.http_client_timeout)

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    def send(self, event: str, payload: dict) -> None:
        """POST one event. Raises httpx.HTTPError on transport or HTTP failure."""
        resp = self._client.post(self._webhook_url, json={"event": event, **payload})
        resp.raise_for_status()

    def close(self) -> None:
        self._client.close()
