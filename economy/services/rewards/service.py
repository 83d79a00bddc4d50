"""
AdRewardService: coins for watching an ad.

Validate first (guard + calculator), then one transaction: the AdWatchRecord
insert (which consumes quota and the token) and the credit through the ledger.
A rejected attempt writes nothing.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from economy.models.ledger_entry import LedgerKind, LedgerSource
from economy.schemas.outcomes import AdEligibility, AdRewardOutcome, RejectionCode
from economy.services.economy_config import EconomyConfig
from economy.services.fraud.guard import FraudGuard
from economy.services.ledger.service import LedgerService
from economy.services.rewards.calculator import AdType, daily_limit_for, reward_for
from economy.services.transactions import commit_or_fail, storage_operation
from economy.utils.metrics import ad_reward_rejections_total
from economy.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


class AdRewardService:
    def __init__(self, db: Session):
        self.db = db
        self.guard = FraudGuard(db)
        self.ledger = LedgerService(db)

    @storage_operation("reward_for_ad")
    def reward_for_ad(
        self,
        account_id: str,
        ad_token: str,
        ad_type: str,
        country_code: str | None,
        config: EconomyConfig,
        now: datetime | None = None,
    ) -> AdRewardOutcome:
        now = now or utcnow()

        try:
            ad_type = AdType(ad_type)
        except ValueError:
            return self._reject(account_id, AdEligibility.reject(RejectionCode.INVALID_AD_TYPE))

        eligibility = self.guard.evaluate(
            account_id,
            ad_token,
            cooldown_minutes=config.cooldown_minutes,
            daily_limit=daily_limit_for(country_code, config),
            hourly_limit=config.hourly_limit,
            now=now,
            replay_window_minutes=config.replay_window_minutes,
            token_min_length=config.token_min_length,
        )
        if not eligibility.eligible:
            return self._reject(account_id, eligibility)

        coins = reward_for(ad_type, config.coins_per_ad)
        self.ledger.get_or_create_account(account_id)

        self.guard.record_watch(account_id, ad_token, now=now)
        new_balance = self.ledger.apply_delta(
            account_id,
            coins,
            LedgerKind.AD_REWARD,
            LedgerSource.AD,
            now=now,
        )
        commit_or_fail(self.db, "reward_for_ad")

        logger.info(
            "ad_reward_granted",
            extra={
                "account_id": account_id,
                "amount": coins,
                "balance": new_balance,
                "ad_type": ad_type.value,
                "country": country_code,
            },
        )
        return AdRewardOutcome(
            granted=True,
            coins_earned=coins,
            new_balance=new_balance,
            daily_remaining=eligibility.daily_remaining,
            hourly_remaining=eligibility.hourly_remaining,
        )

    def _reject(self, account_id: str, eligibility: AdEligibility) -> AdRewardOutcome:
        code = eligibility.error_code.value
        ad_reward_rejections_total.labels(reason=code).inc()
        logger.info("ad_reward_rejected", extra={"account_id": account_id, "reason": code})
        return AdRewardOutcome.rejected(eligibility)
