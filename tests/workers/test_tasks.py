"""Tests for Celery tasks and the post-commit dispatch helper."""
from datetime import timedelta
from unittest.mock import MagicMock, patch

from economy.models.ad_watch import AdWatchRecord
from economy.services.fraud.guard import FraudGuard
from economy.services.notifications.dispatch import dispatch_content_unlocked
from economy.utils.timeutil import utcnow
from economy.workers.tasks.notify import notify_content_unlocked
from economy.workers.tasks.prune_ad_watches import prune_ad_watch_records


class TestDispatch:
    def test_enqueues_notification(self):
        with patch("economy.workers.tasks.notify.notify_content_unlocked.delay") as delay:
            dispatch_content_unlocked("acc-1", "ep-1")
        delay.assert_called_once_with("acc-1", "ep-1")

    def test_broker_failure_is_swallowed(self):
        with patch(
            "economy.workers.tasks.notify.notify_content_unlocked.delay",
            side_effect=ConnectionError("broker down"),
        ):
            dispatch_content_unlocked("acc-1", "ep-1")


class TestNotifyTask:
    def test_disabled_without_webhook(self):
        client = MagicMock(enabled=False)
        with patch("economy.workers.tasks.notify.NotificationClient", return_value=client):
            result = notify_content_unlocked("acc-1", "ep-1")
        assert result == {"sent": False, "reason": "disabled"}
        client.send.assert_not_called()
        client.close.assert_called_once()

    def test_sends_event(self):
        client = MagicMock(enabled=True)
        with patch("economy.workers.tasks.notify.NotificationClient", return_value=client):
            result = notify_content_unlocked("acc-1", "ep-1")
        assert result == {"sent": True}
        client.send.assert_called_once_with("content_unlocked", {"account_id": "acc-1", "content_id": "ep-1"})


class TestPruneTask:
    def test_removes_expired_records(self, db, make_account):
        make_account("acc-1")
        now = utcnow()
        FraudGuard(db).record_watch("acc-1", "token-old-0001", now=now - timedelta(hours=48))
        FraudGuard(db).record_watch("acc-1", "token-new-0001", now=now - timedelta(minutes=10))
        db.commit()

        with patch("economy.workers.tasks.prune_ad_watches.SessionLocal", return_value=db):
            result = prune_ad_watch_records()

        assert result == {"removed": 1}
        assert db.query(AdWatchRecord).count() == 1
