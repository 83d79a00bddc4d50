"""
LedgerService: the only writer of Account.balance.

Every balance change is a single conditional UPDATE performed by the database
(never read-modify-write in Python) plus one LedgerEntry in the same transaction.
Methods that take part in a larger unit of work only flush; the caller commits.
"""
import logging
from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from economy.models.account import Account
from economy.models.ledger_entry import LedgerEntry, LedgerKind, LedgerSource
from economy.schemas.outcomes import InsufficientFunds, ReconciliationReport
from economy.services.errors import AccountNotFoundError
from economy.services.transactions import commit_or_fail, storage_operation
from economy.utils.metrics import coins_credited_total, coins_debited_total
from economy.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

MAX_HISTORY_LIMIT = 100


class LedgerService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def get_account(self, account_id: str) -> Account | None:
        return self.db.query(Account).filter(Account.id == account_id).one_or_none()

    @storage_operation("get_or_create_account")
    def get_or_create_account(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        if account:
            return account
        account = Account(id=account_id, balance=0, premium_override=False)
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError:
            # Another device of the same caller created it first
            self.db.rollback()
            return self.db.query(Account).filter(Account.id == account_id).one()
        self.db.refresh(account)
        logger.info("account_created", extra={"account_id": account_id})
        return account

    @storage_operation("set_premium_override")
    def set_premium_override(self, account_id: str, active: bool) -> Account:
        """Mirror the subscription source of truth onto the account. No ledger entry."""
        self.get_or_create_account(account_id)
        self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(premium_override=active, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        commit_or_fail(self.db, "set_premium_override")
        logger.info("premium_override_set", extra={"account_id": account_id, "reason": str(active)})
        return self.db.query(Account).filter(Account.id == account_id).one()

    # ------------------------------------------------------------------
    # Balance mutation
    # ------------------------------------------------------------------

    def apply_delta(
        self,
        account_id: str,
        delta: int,
        kind: LedgerKind,
        source: LedgerSource,
        content_ref: str | None = None,
        idempotency_key: str | None = None,
        now: datetime | None = None,
    ) -> int | InsufficientFunds:
        """
        Atomically add `delta` to the balance and append the matching LedgerEntry.

        A debit that would take the balance below zero changes nothing and returns
        InsufficientFunds. Returns the post-mutation balance otherwise.
        Flush only: the caller owns the transaction.
        """
        now = now or utcnow()
        new_balance = self.db.execute(
            update(Account)
            .where(Account.id == account_id, Account.balance + delta >= 0)
            .values(balance=Account.balance + delta, updated_at=now)
            .returning(Account.balance)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()

        if new_balance is None:
            available = self.db.query(Account.balance).filter(Account.id == account_id).scalar()
            if available is None:
                raise AccountNotFoundError(account_id)
            return InsufficientFunds(required=-delta, available=available)

        entry = LedgerEntry(
            account_id=account_id,
            kind=LedgerKind(kind).value,
            amount=delta,
            source=LedgerSource(source).value,
            content_ref=content_ref,
            balance_after=new_balance,
            idempotency_key=idempotency_key,
            created_at=now,
        )
        self.db.add(entry)
        self.db.flush()

        source_label = LedgerSource(source).value
        if delta >= 0:
            coins_credited_total.labels(source=source_label).inc(delta)
        else:
            coins_debited_total.labels(source=source_label).inc(-delta)
        return new_balance

    @storage_operation("grant_gift")
    def grant_gift(self, account_id: str, amount: int, idempotency_key: str) -> int:
        """Admin gift. Replaying the same key is a no-op that returns the current balance."""
        if amount <= 0:
            raise ValueError("gift amount must be positive")
        self.get_or_create_account(account_id)
        key = f"gift:{idempotency_key}"
        try:
            new_balance = self.apply_delta(
                account_id,
                amount,
                LedgerKind.GIFT,
                LedgerSource.GIFT,
                idempotency_key=key,
            )
        except IntegrityError:
            self.db.rollback()
            logger.info("gift_duplicate", extra={"account_id": account_id, "amount": amount})
            return self.db.query(Account.balance).filter(Account.id == account_id).scalar()
        commit_or_fail(self.db, "grant_gift")
        logger.info("gift_granted", extra={"account_id": account_id, "amount": amount, "balance": new_balance})
        return new_balance

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @storage_operation("get_history")
    def get_history(self, account_id: str, limit: int = 50) -> list[LedgerEntry]:
        """Newest first. limit is clamped to 1..100."""
        limit = max(1, min(limit, MAX_HISTORY_LIMIT))
        return (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.created_at.desc())
            .limit(limit)
            .all()
        )

    @storage_operation("reconcile")
    def reconcile(self, account_id: str) -> ReconciliationReport:
        balance = self.db.query(Account.balance).filter(Account.id == account_id).scalar()
        if balance is None:
            raise AccountNotFoundError(account_id)
        ledger_sum = (
            self.db.query(func.coalesce(func.sum(LedgerEntry.amount), 0))
            .filter(LedgerEntry.account_id == account_id)
            .scalar()
        )
        report = ReconciliationReport(account_id=account_id, balance=balance, ledger_sum=int(ledger_sum))
        if not report.consistent:
            logger.error(
                "ledger_reconciliation_mismatch",
                extra={"account_id": account_id, "balance": balance, "amount": int(ledger_sum)},
            )
        return report
