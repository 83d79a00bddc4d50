"""Tests for CheckInService: streaks, payout cycle, once per UTC day."""
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from economy.models.ledger_entry import LedgerEntry
from economy.schemas.outcomes import CheckInResultStatus
from economy.services.checkin.service import CheckInService, idempotency_key_for, payout_for, run_length
from economy.services.errors import StorageFailure
from economy.services.ledger.service import LedgerService


DAY1 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestHelpers:
    def test_run_length(self):
        days = [date(2026, 3, 5), date(2026, 3, 4), date(2026, 3, 2)]
        assert run_length(days, date(2026, 3, 5)) == 2
        assert run_length(days, date(2026, 3, 6)) == 0
        assert run_length([], date(2026, 3, 5)) == 0

    def test_run_length_ignores_days_after_end(self):
        days = [date(2026, 3, 6), date(2026, 3, 5), date(2026, 3, 4)]
        assert run_length(days, date(2026, 3, 5)) == 2

    def test_payout_cycle(self):
        assert [payout_for(s) for s in range(1, 10)] == [10, 15, 20, 25, 30, 40, 100, 10, 15]

    def test_idempotency_key(self):
        assert idempotency_key_for("acc-1", date(2026, 3, 1)) == "checkin:acc-1:2026-03-01"


class TestCheckIn:
    def test_consecutive_days_follow_cycle(self, db):
        svc = CheckInService(db)
        earned = []
        for i in range(9):
            outcome = svc.check_in("acc-1", now=DAY1 + timedelta(days=i))
            assert outcome.status is CheckInResultStatus.GRANTED
            assert outcome.streak == i + 1
            earned.append(outcome.coins_earned)

        assert earned == [10, 15, 20, 25, 30, 40, 100, 10, 15]
        assert LedgerService(db).get_account("acc-1").balance == sum(earned)

    def test_entry_shape(self, db):
        CheckInService(db).check_in("acc-1", now=DAY1)
        entry = db.query(LedgerEntry).one()
        assert entry.kind == "earn"
        assert entry.source == "DAILY_CHECKIN"
        assert entry.idempotency_key == "checkin:acc-1:2026-03-01"

    def test_second_claim_same_day(self, db):
        svc = CheckInService(db)
        svc.check_in("acc-1", now=DAY1)
        again = svc.check_in("acc-1", now=DAY1 + timedelta(hours=14))

        assert again.status is CheckInResultStatus.ALREADY_CLAIMED
        assert again.coins_earned == 0
        assert db.query(LedgerEntry).count() == 1

    def test_new_day_starts_at_utc_midnight(self, db):
        svc = CheckInService(db)
        svc.check_in("acc-1", now=DAY1.replace(hour=23, minute=59))
        outcome = svc.check_in("acc-1", now=DAY1.replace(hour=0, minute=1) + timedelta(days=1))
        assert outcome.status is CheckInResultStatus.GRANTED
        assert outcome.streak == 2

    def test_skipped_day_resets_streak(self, db):
        svc = CheckInService(db)
        for i in range(3):
            svc.check_in("acc-1", now=DAY1 + timedelta(days=i))
        outcome = svc.check_in("acc-1", now=DAY1 + timedelta(days=4))

        assert outcome.streak == 1
        assert outcome.coins_earned == 10
        assert outcome.day_index == 0

    def test_concurrent_claim_is_already_claimed(self, db, make_account):
        make_account("acc-1")
        with patch.object(LedgerService, "apply_delta", side_effect=IntegrityError("insert", {}, Exception())):
            outcome = CheckInService(db).check_in("acc-1", now=DAY1)
        assert outcome.status is CheckInResultStatus.ALREADY_CLAIMED

    def test_custom_payouts(self, db):
        outcome = CheckInService(db).check_in("acc-1", payouts=(5, 50), now=DAY1)
        assert outcome.coins_earned == 5


class TestStatus:
    def test_fresh_account(self, db):
        state = CheckInService(db).status("acc-1", now=DAY1)
        assert not state.claimed_today
        assert state.streak == 0
        assert state.next_payout == 10

    def test_after_claim_today(self, db):
        svc = CheckInService(db)
        svc.check_in("acc-1", now=DAY1)
        svc.check_in("acc-1", now=DAY1 + timedelta(days=1))
        state = svc.status("acc-1", now=DAY1 + timedelta(days=1, hours=3))

        assert state.claimed_today
        assert state.streak == 2
        assert state.next_payout == 20

    def test_pending_claim_keeps_streak(self, db):
        svc = CheckInService(db)
        svc.check_in("acc-1", now=DAY1)
        state = svc.status("acc-1", now=DAY1 + timedelta(days=1))

        assert not state.claimed_today
        assert state.streak == 1
        assert state.next_payout == 15


class TestStorageErrors:
    def test_failure_before_commit_raises_storage_failure(self, db, make_account):
        make_account("acc-1")
        deadlock = OperationalError("UPDATE accounts", {}, Exception("deadlock detected"))
        with patch.object(LedgerService, "apply_delta", side_effect=deadlock):
            with pytest.raises(StorageFailure):
                CheckInService(db).check_in("acc-1", now=DAY1)

        assert db.query(LedgerEntry).count() == 0
        assert CheckInService(db).check_in("acc-1", now=DAY1).status is CheckInResultStatus.GRANTED
