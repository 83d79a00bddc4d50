"""
EconomyService: the operations exposed to the rest of the platform.
Thin composition over the engines; carries the explicit EconomyConfig.
"""
from datetime import datetime

from sqlalchemy.orm import Session

from economy.models.ledger_entry import LedgerEntry
from economy.schemas.catalog import Episode
from economy.schemas.outcomes import AdRewardOutcome, CheckInOutcome, CheckInState, UnlockOutcome
from economy.schemas.wallet import WalletOut
from economy.services.checkin.service import CheckInService
from economy.services.economy_config import EconomyConfig, get_economy_config
from economy.services.ledger.service import LedgerService
from economy.services.rewards.service import AdRewardService
from economy.services.unlocks.service import UnlockService


class EconomyService:
    def __init__(self, db: Session, config: EconomyConfig | None = None):
        self.db = db
        self.config = config or get_economy_config()
        self.ledger = LedgerService(db)

    def get_wallet(self, account_id: str) -> WalletOut:
        account = self.ledger.get_or_create_account(account_id)
        return WalletOut(coin_balance=account.balance, is_premium=account.premium_override)

    def get_wallet_history(self, account_id: str, limit: int = 50) -> list[LedgerEntry]:
        return self.ledger.get_history(account_id, limit)

    def reward_for_ad(
        self,
        account_id: str,
        ad_token: str,
        ad_type: str,
        country_code: str | None = None,
        now: datetime | None = None,
    ) -> AdRewardOutcome:
        return AdRewardService(self.db).reward_for_ad(
            account_id, ad_token, ad_type, country_code, self.config, now=now
        )

    def unlock_content(self, account_id: str, episode: Episode, now: datetime | None = None) -> UnlockOutcome:
        return UnlockService(self.db).unlock(
            account_id, episode.id, episode.price_coins, episode.is_free, now=now
        )

    def unlock_content_with_ad(
        self,
        account_id: str,
        episode: Episode,
        ad_token: str,
        now: datetime | None = None,
    ) -> UnlockOutcome:
        return UnlockService(self.db).unlock_with_ad(
            account_id, episode.id, ad_token, episode.is_free, self.config, now=now
        )

    def daily_check_in(self, account_id: str, now: datetime | None = None) -> CheckInOutcome:
        return CheckInService(self.db).check_in(account_id, self.config.checkin_payouts, now=now)

    def check_in_status(self, account_id: str, now: datetime | None = None) -> CheckInState:
        return CheckInService(self.db).status(account_id, self.config.checkin_payouts, now=now)
