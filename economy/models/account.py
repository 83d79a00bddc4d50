from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String

from economy.db.base import Base


class Account(Base):
    """Coin wallet of one caller identity. Balance changes only through LedgerService."""

    __tablename__ = "accounts"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),)

    id = Column(String, primary_key=True)  # opaque id issued by the identity provider
    balance = Column(Integer, nullable=False, default=0)
    # Set by the subscription webhook ingester; grants unconditional unlock access
    premium_override = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
