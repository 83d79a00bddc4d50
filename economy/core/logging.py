"""
Structured JSON logs. Event names go in the message ("ad_reward_granted"),
context goes in `extra=` and is emitted only for whitelisted keys.
"""
import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from economy.core.config import settings

ECONOMY_FIELDS = ("account_id", "content_id", "amount", "balance", "source", "kind", "streak")
AD_FIELDS = ("ad_type", "country", "reason", "removed")
HTTP_FIELDS = ("request_id", "path", "method", "status_code", "latency_ms")
BREAKER_FIELDS = ("breaker_name", "old_state", "new_state")

# Chatty at INFO; only warnings are useful in production logs
QUIET_LOGGERS = ("httpx", "httpcore", "celery.app.trace")


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    fields = ECONOMY_FIELDS + AD_FIELDS + HTTP_FIELDS + BREAKER_FIELDS + ("error",)

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(
            (name, getattr(record, name))
            for name in self.fields
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None) -> None:
    formatter = JsonFormatter()
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    handlers: list[logging.Handler] = [stream]

    if settings.log_file:
        rotating = RotatingFileHandler(
            settings.log_file,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        rotating.setFormatter(formatter)
        handlers.append(rotating)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel((level or settings.log_level).upper())
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
