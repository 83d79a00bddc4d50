"""Tests for AdRewardService: guard + credit in one transaction."""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from economy.models.ad_watch import AdWatchRecord
from economy.models.ledger_entry import LedgerEntry
from economy.schemas.outcomes import RejectionCode
from economy.services.economy_config import EconomyConfig
from economy.services.errors import StorageFailure
from economy.services.ledger.service import LedgerService
from economy.services.rewards.service import AdRewardService


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
CONFIG = EconomyConfig(tier_a_countries=["US"])


def _balance(db, account_id):
    return LedgerService(db).get_account(account_id).balance


class TestRewardForAd:
    def test_grants_coins_and_records_watch(self, db):
        outcome = AdRewardService(db).reward_for_ad("acc-1", "token-0000001", "rewarded", None, CONFIG, now=NOW)

        assert outcome.granted
        assert outcome.coins_earned == 10
        assert outcome.new_balance == 10
        assert outcome.daily_remaining == 9
        assert outcome.hourly_remaining == 2
        assert db.query(AdWatchRecord).count() == 1
        (entry,) = db.query(LedgerEntry).all()
        assert entry.kind == "ad_reward"
        assert entry.source == "AD"

    def test_interstitial_pays_half(self, db):
        outcome = AdRewardService(db).reward_for_ad("acc-1", "token-0000001", "interstitial", None, CONFIG, now=NOW)
        assert outcome.coins_earned == 5

    def test_unknown_ad_type_writes_nothing(self, db):
        outcome = AdRewardService(db).reward_for_ad("acc-1", "token-0000001", "video", None, CONFIG, now=NOW)
        assert not outcome.granted
        assert outcome.error_code is RejectionCode.INVALID_AD_TYPE
        assert db.query(AdWatchRecord).count() == 0

    def test_rejection_writes_nothing(self, db, make_account):
        make_account("acc-1")
        outcome = AdRewardService(db).reward_for_ad("acc-1", "bad", "rewarded", None, CONFIG, now=NOW)

        assert not outcome.granted
        assert outcome.reason == "invalid token"
        assert db.query(AdWatchRecord).count() == 0
        assert db.query(LedgerEntry).count() == 0
        assert _balance(db, "acc-1") == 0

    def test_same_token_twice_credits_once(self, db):
        svc = AdRewardService(db)
        first = svc.reward_for_ad("acc-1", "token-0000001", "rewarded", None, CONFIG, now=NOW)
        second = svc.reward_for_ad(
            "acc-1", "token-0000001", "rewarded", None, CONFIG, now=NOW + timedelta(minutes=1)
        )

        assert first.granted
        assert not second.granted
        assert second.error_code in (RejectionCode.COOLDOWN, RejectionCode.REPLAY)
        assert _balance(db, "acc-1") == 10

    def test_token_reuse_after_replay_window_is_granted(self, db):
        config = EconomyConfig(cooldown_minutes=0)
        svc = AdRewardService(db)
        svc.reward_for_ad("acc-1", "token-0000001", "rewarded", None, config, now=NOW)
        inside = svc.reward_for_ad("acc-1", "token-0000001", "rewarded", None, config, now=NOW + timedelta(minutes=4))
        after = svc.reward_for_ad("acc-1", "token-0000001", "rewarded", None, config, now=NOW + timedelta(minutes=10))

        assert inside.error_code is RejectionCode.REPLAY
        assert after.granted
        assert _balance(db, "acc-1") == 20
        assert db.query(AdWatchRecord).count() == 2

    def test_eleventh_reward_of_the_day_rejected(self, db):
        svc = AdRewardService(db)
        start = NOW.replace(hour=1)
        for i in range(10):
            outcome = svc.reward_for_ad(
                "acc-1", f"token-daily-{i:03d}", "rewarded", None, CONFIG, now=start + timedelta(minutes=30 * i)
            )
            assert outcome.granted, i

        eleventh = svc.reward_for_ad(
            "acc-1", "token-daily-999", "rewarded", None, CONFIG, now=start + timedelta(minutes=300)
        )
        assert eleventh.error_code is RejectionCode.DAILY_LIMIT
        assert eleventh.daily_remaining == 0
        assert _balance(db, "acc-1") == 100
        assert db.query(AdWatchRecord).count() == 10

    def test_tier_a_country_gets_higher_cap(self, db):
        svc = AdRewardService(db)
        start = NOW.replace(hour=1)
        for i in range(10):
            svc.reward_for_ad(
                "acc-1", f"token-daily-{i:03d}", "rewarded", "us", CONFIG, now=start + timedelta(minutes=30 * i)
            )
        eleventh = svc.reward_for_ad(
            "acc-1", "token-daily-999", "rewarded", "us", CONFIG, now=start + timedelta(minutes=300)
        )
        assert eleventh.granted
        assert eleventh.daily_remaining == 9

    def test_storage_error_before_commit_is_retryable(self, db, make_account):
        make_account("acc-1")
        svc = AdRewardService(db)
        deadlock = OperationalError("UPDATE accounts", {}, Exception("deadlock detected"))
        with patch.object(LedgerService, "apply_delta", side_effect=deadlock):
            with pytest.raises(StorageFailure):
                svc.reward_for_ad("acc-1", "token-0000001", "rewarded", None, CONFIG, now=NOW)

        assert db.query(AdWatchRecord).count() == 0
        assert db.query(LedgerEntry).count() == 0
        assert _balance(db, "acc-1") == 0
