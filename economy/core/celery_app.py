"""
Celery application: broker and result backend from settings.
Tasks are in economy.workers.tasks (notifications, ad-watch pruning).
"""
from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from economy.core.config import settings
from economy.core.logging import configure_logging

celery_app = Celery(
    "economy",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "economy.workers.tasks.notify",
        "economy.workers.tasks.prune_ad_watches",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_time_limit=300,
    result_expires=86400,
    # Dispatch happens on the request path after commit: fail fast if the broker is down
    task_publish_retry_policy={
        "max_retries": 1,
        "interval_start": 0,
        "interval_step": 0.2,
        "interval_max": 0.5,
    },
    beat_schedule={
        "prune-ad-watch-records": {
            "task": "economy.workers.tasks.prune_ad_watches.prune_ad_watch_records",
            "schedule": crontab(minute="*/30"),
        },
    },
)

celery_app.conf.task_routes = {
    "economy.workers.tasks.notify.notify_content_unlocked": {"queue": "notifications"},
}


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    # Keeps Celery from installing its own handlers; workers log JSON like the API
    configure_logging()
