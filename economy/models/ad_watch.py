from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, String

from economy.db.base import Base


class AdWatchRecord(Base):
    """One accepted ad watch. Source of truth for cooldown, caps and replay checks."""

    __tablename__ = "ad_watch_records"
    __table_args__ = (
        Index("ix_ad_watch_account_created", "account_id", "created_at"),
        Index("ix_ad_watch_account_token", "account_id", "ad_token"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    ad_token = Column(String(255), nullable=False)
    account_id = Column(String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    content_ref = Column(String, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc),
    )
