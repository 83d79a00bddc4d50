from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint

from economy.db.base import Base


class UnlockMethod(str, Enum):
    COIN = "COIN"
    AD = "AD"
    SUB = "SUB"


class UnlockGrant(Base):
    __tablename__ = "unlock_grants"
    # Final safety net against concurrent duplicate unlocks
    __table_args__ = (UniqueConstraint("account_id", "content_id", name="uq_unlock_grants_account_content"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    account_id = Column(String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    content_id = Column(String, nullable=False, index=True)
    method = Column(String(10), nullable=False)  # UnlockMethod
    granted_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
