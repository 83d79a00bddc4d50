"""
LedgerEntry: append-only audit trail of balance changes.
sum(amount) per account must always equal Account.balance.
"""
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from economy.db.base import Base


class LedgerKind(str, Enum):
    UNLOCK = "unlock"
    REWARD = "reward"
    GIFT = "gift"
    AD_REWARD = "ad_reward"
    EARN = "earn"


class LedgerSource(str, Enum):
    COIN = "COIN"
    AD = "AD"
    SUB = "SUB"
    GIFT = "GIFT"
    DAILY_CHECKIN = "DAILY_CHECKIN"


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("ix_ledger_entries_account_created", "account_id", "created_at"),
        Index("ix_ledger_entries_account_source", "account_id", "source"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    account_id = Column(String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    kind = Column(String(20), nullable=False)      # LedgerKind
    amount = Column(Integer, nullable=False)       # negative = debit
    source = Column(String(20), nullable=False)    # LedgerSource
    content_ref = Column(String, nullable=True)
    balance_after = Column(Integer, nullable=False)
    # NULL for entries that need no dedup; unique otherwise (checkin:<acc>:<day>, gift:<key>)
    idempotency_key = Column(String, unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
