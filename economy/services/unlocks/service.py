"""
UnlockService: permanent access to one content unit, paid at most once.

The (account_id, content_id) unique constraint on UnlockGrant is the idempotency
boundary: the existence check is an early exit, the constraint closes the race.
"""
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from economy.models.ledger_entry import LedgerKind, LedgerSource
from economy.models.unlock_grant import UnlockGrant, UnlockMethod
from economy.schemas.outcomes import InsufficientFunds, UnlockOutcome, UnlockStatus
from economy.services.economy_config import EconomyConfig
from economy.services.fraud.guard import FraudGuard
from economy.services.ledger.service import LedgerService
from economy.services.notifications.dispatch import dispatch_content_unlocked
from economy.services.transactions import commit_or_fail, storage_operation
from economy.utils.metrics import unlocks_total
from economy.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


class UnlockService:
    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)
        self.guard = FraudGuard(db)

    def is_unlocked(self, account_id: str, content_id: str) -> bool:
        return (
            self.db.query(UnlockGrant.id)
            .filter(UnlockGrant.account_id == account_id, UnlockGrant.content_id == content_id)
            .first()
        ) is not None

    def list_unlocked(self, account_id: str) -> list[str]:
        rows = (
            self.db.query(UnlockGrant.content_id)
            .filter(UnlockGrant.account_id == account_id)
            .order_by(UnlockGrant.granted_at)
            .all()
        )
        return [content_id for (content_id,) in rows]

    # ------------------------------------------------------------------
    # Coin unlock
    # ------------------------------------------------------------------

    @storage_operation("unlock")
    def unlock(
        self,
        account_id: str,
        content_id: str,
        price: int,
        is_free: bool,
        now: datetime | None = None,
    ) -> UnlockOutcome:
        """
        Spend `price` coins for permanent access to `content_id`.

        Free content and premium accounts are granted without a ledger mutation
        and without a grant record. An existing grant is reported as already granted
        even for premium accounts. A repeated call never debits twice.
        """
        if price < 0:
            raise ValueError("price must be non-negative")
        now = now or utcnow()
        account = self.ledger.get_or_create_account(account_id)

        if is_free:
            return self._outcome(UnlockStatus.GRANTED, content_id, None, account.balance)

        if self.is_unlocked(account_id, content_id):
            return self._outcome(UnlockStatus.ALREADY_GRANTED, content_id, None, account.balance)

        if account.premium_override:
            return self._outcome(UnlockStatus.GRANTED, content_id, UnlockMethod.SUB.value, account.balance)

        if account.balance < price:
            return self._insufficient(account_id, content_id, price, account.balance)

        try:
            self.db.add(
                UnlockGrant(
                    account_id=account_id,
                    content_id=content_id,
                    method=UnlockMethod.COIN.value,
                    granted_at=now,
                )
            )
            self.db.flush()
        except IntegrityError:
            # Concurrent unlock of the same pair won the insert
            self.db.rollback()
            return self._outcome(
                UnlockStatus.ALREADY_GRANTED, content_id, None, self._balance(account_id)
            )

        result = self.ledger.apply_delta(
            account_id,
            -price,
            LedgerKind.UNLOCK,
            LedgerSource.COIN,
            content_ref=content_id,
            now=now,
        )
        if isinstance(result, InsufficientFunds):
            # Balance was spent elsewhere since the pre-check; drop the grant too
            self.db.rollback()
            return self._insufficient(account_id, content_id, price, result.available)

        commit_or_fail(self.db, "unlock")
        logger.info(
            "content_unlocked",
            extra={"account_id": account_id, "content_id": content_id, "amount": -price, "balance": result},
        )
        dispatch_content_unlocked(account_id, content_id)
        return self._outcome(UnlockStatus.GRANTED, content_id, UnlockMethod.COIN.value, result)

    # ------------------------------------------------------------------
    # Ad unlock
    # ------------------------------------------------------------------

    @storage_operation("unlock_with_ad")
    def unlock_with_ad(
        self,
        account_id: str,
        content_id: str,
        ad_token: str,
        is_free: bool,
        config: EconomyConfig,
        now: datetime | None = None,
    ) -> UnlockOutcome:
        """Unlock by watching an ad: the watch is recorded, no coins move."""
        now = now or utcnow()
        if is_free:
            return self._outcome(UnlockStatus.NOT_REQUIRED, content_id, None, None)

        self.ledger.get_or_create_account(account_id)
        if self.is_unlocked(account_id, content_id):
            return self._outcome(UnlockStatus.ALREADY_GRANTED, content_id, None, None)

        eligibility = self.guard.validate_for_unlock(
            account_id,
            ad_token,
            now=now,
            replay_window_minutes=config.replay_window_minutes,
            token_min_length=config.token_min_length,
        )
        if not eligibility.eligible:
            unlocks_total.labels(outcome=UnlockStatus.AD_REJECTED.value, method=UnlockMethod.AD.value).inc()
            return UnlockOutcome(
                status=UnlockStatus.AD_REJECTED,
                content_id=content_id,
                ad_error_code=eligibility.error_code,
            )

        try:
            self.guard.record_watch(account_id, ad_token, content_ref=content_id, now=now)
            self.db.add(
                UnlockGrant(
                    account_id=account_id,
                    content_id=content_id,
                    method=UnlockMethod.AD.value,
                    granted_at=now,
                )
            )
            self.db.flush()
        except IntegrityError:
            # Concurrent unlock of the same pair won the grant insert
            self.db.rollback()
            return self._outcome(UnlockStatus.ALREADY_GRANTED, content_id, None, None)

        commit_or_fail(self.db, "unlock_with_ad")
        logger.info("content_unlocked_with_ad", extra={"account_id": account_id, "content_id": content_id})
        dispatch_content_unlocked(account_id, content_id)
        return self._outcome(UnlockStatus.GRANTED, content_id, UnlockMethod.AD.value, None)

    # ------------------------------------------------------------------

    def _balance(self, account_id: str) -> int | None:
        account = self.ledger.get_account(account_id)
        return account.balance if account else None

    def _insufficient(self, account_id: str, content_id: str, price: int, available: int) -> UnlockOutcome:
        logger.info(
            "unlock_insufficient_funds",
            extra={"account_id": account_id, "content_id": content_id, "amount": price, "balance": available},
        )
        return self._outcome(
            UnlockStatus.INSUFFICIENT_FUNDS, content_id, None, available, required=price
        )

    @staticmethod
    def _outcome(
        status: UnlockStatus,
        content_id: str,
        method: str | None,
        remaining_balance: int | None,
        required: int | None = None,
    ) -> UnlockOutcome:
        unlocks_total.labels(outcome=status.value, method=method or "none").inc()
        return UnlockOutcome(
            status=status,
            content_id=content_id,
            method=method,
            remaining_balance=remaining_balance,
            required=required,
        )
