"""Tests for FraudGuard: check order, windows, replay, pruning."""
from datetime import datetime, timedelta, timezone

import pytest

from economy.models.ad_watch import AdWatchRecord
from economy.schemas.outcomes import RejectionCode
from economy.services.fraud.guard import FraudGuard, is_well_formed


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
LIMITS = {"cooldown_minutes": 5, "daily_limit": 10, "hourly_limit": 3}


def _watch(db, account_id, token, at):
    FraudGuard(db).record_watch(account_id, token, now=at)
    db.commit()


def test_is_well_formed():
    assert is_well_formed("a" * 10)
    assert not is_well_formed("short")
    assert not is_well_formed("")
    assert not is_well_formed(None)


class TestEvaluate:
    def test_first_watch_is_eligible(self, db, make_account):
        make_account("acc-1")
        result = FraudGuard(db).evaluate("acc-1", "token-0000001", now=NOW, **LIMITS)
        assert result.eligible
        assert result.daily_remaining == 9
        assert result.hourly_remaining == 2

    def test_malformed_token_rejected_first(self, db, make_account):
        make_account("acc-1")
        _watch(db, "acc-1", "token-0000001", NOW - timedelta(minutes=1))
        result = FraudGuard(db).evaluate("acc-1", "short", now=NOW, **LIMITS)
        assert result.error_code is RejectionCode.INVALID_TOKEN

    def test_cooldown_reports_remaining_seconds(self, db, make_account):
        make_account("acc-1")
        _watch(db, "acc-1", "token-0000001", NOW - timedelta(minutes=2))
        result = FraudGuard(db).evaluate("acc-1", "token-0000002", now=NOW, **LIMITS)
        assert result.error_code is RejectionCode.COOLDOWN
        assert result.cooldown_seconds == 180
        assert result.reason == "cooldown active"

    def test_cooldown_over_after_window(self, db, make_account):
        make_account("acc-1")
        _watch(db, "acc-1", "token-0000001", NOW - timedelta(minutes=6))
        assert FraudGuard(db).evaluate("acc-1", "token-0000002", now=NOW, **LIMITS).eligible

    def test_daily_limit(self, db, make_account):
        make_account("acc-1")
        day_start = NOW.replace(hour=0)
        for i in range(10):
            _watch(db, "acc-1", f"token-daily-{i:03d}", day_start + timedelta(minutes=30 * i))

        result = FraudGuard(db).evaluate("acc-1", "token-daily-999", now=NOW, **LIMITS)
        assert result.error_code is RejectionCode.DAILY_LIMIT
        assert result.daily_remaining == 0

    def test_daily_counter_resets_at_utc_midnight(self, db, make_account):
        make_account("acc-1")
        yesterday = NOW - timedelta(days=1)
        for i in range(10):
            _watch(db, "acc-1", f"token-daily-{i:03d}", yesterday + timedelta(minutes=30 * i))

        result = FraudGuard(db).evaluate("acc-1", "token-today-001", now=NOW.replace(hour=1), **LIMITS)
        assert result.eligible

    def test_hourly_limit(self, db, make_account):
        make_account("acc-1")
        for i, minutes_ago in enumerate((50, 35, 20)):
            _watch(db, "acc-1", f"token-hourly-{i}", NOW - timedelta(minutes=minutes_ago))

        result = FraudGuard(db).evaluate("acc-1", "token-hourly-9", now=NOW, **LIMITS)
        assert result.error_code is RejectionCode.HOURLY_LIMIT
        assert result.reason == "hourly limit reached"

    def test_replay_within_window(self, db, make_account):
        make_account("acc-1")
        _watch(db, "acc-1", "token-0000001", NOW - timedelta(minutes=2))
        result = FraudGuard(db).evaluate(
            "acc-1", "token-0000001", now=NOW, cooldown_minutes=0, daily_limit=10, hourly_limit=3
        )
        assert result.error_code is RejectionCode.REPLAY
        assert result.reason == "token already used"

    def test_cooldown_checked_before_replay(self, db, make_account):
        make_account("acc-1")
        _watch(db, "acc-1", "token-0000001", NOW - timedelta(minutes=1))
        result = FraudGuard(db).evaluate("acc-1", "token-0000001", now=NOW, **LIMITS)
        assert result.error_code is RejectionCode.COOLDOWN

    def test_other_accounts_do_not_count(self, db, make_account):
        make_account("acc-1")
        make_account("acc-2")
        for i, minutes_ago in enumerate((50, 35, 2)):
            _watch(db, "acc-2", f"token-other-{i}", NOW - timedelta(minutes=minutes_ago))
        assert FraudGuard(db).evaluate("acc-1", "token-mine-001", now=NOW, **LIMITS).eligible


class TestValidateForUnlock:
    def test_not_rate_limited(self, db, make_account):
        make_account("acc-1")
        for i, minutes_ago in enumerate((50, 35, 1)):
            _watch(db, "acc-1", f"token-hourly-{i}", NOW - timedelta(minutes=minutes_ago))
        assert FraudGuard(db).validate_for_unlock("acc-1", "token-unlock-1", now=NOW).eligible

    def test_format_and_replay(self, db, make_account):
        make_account("acc-1")
        _watch(db, "acc-1", "token-0000001", NOW - timedelta(minutes=1))
        guard = FraudGuard(db)
        assert guard.validate_for_unlock("acc-1", "bad", now=NOW).error_code is RejectionCode.INVALID_TOKEN
        assert guard.validate_for_unlock("acc-1", "token-0000001", now=NOW).error_code is RejectionCode.REPLAY


class TestPrune:
    def test_removes_only_old_records(self, db, make_account):
        make_account("acc-1")
        _watch(db, "acc-1", "token-old-0001", NOW - timedelta(hours=30))
        _watch(db, "acc-1", "token-new-0001", NOW - timedelta(hours=2))

        removed = FraudGuard(db).prune(timedelta(hours=25), now=NOW)

        assert removed == 1
        tokens = [r.ad_token for r in db.query(AdWatchRecord).all()]
        assert tokens == ["token-new-0001"]

    def test_refuses_retention_inside_daily_window(self, db, make_account):
        make_account("acc-1")
        _watch(db, "acc-1", "token-0000001", NOW - timedelta(hours=2))

        with pytest.raises(ValueError):
            FraudGuard(db).prune(timedelta(hours=1), now=NOW)
        assert db.query(AdWatchRecord).count() == 1
