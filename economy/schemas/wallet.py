from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class WalletOut(BaseModel):
    coin_balance: int
    is_premium: bool


class LedgerEntryOut(BaseModel):
    id: str
    kind: str
    source: str
    amount: int
    content_ref: str | None = None
    balance_after: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletHistoryOut(BaseModel):
    history: list[LedgerEntryOut]
    total_transactions: int


class AdRewardRequest(BaseModel):
    ad_id: str = Field(..., description="Impression id reported by the ads SDK")
    ad_type: str = Field(..., description="rewarded, interstitial or banner")


class AdRewardOut(BaseModel):
    message: str = "Coins rewarded successfully"
    coins_earned: int
    new_balance: int
    daily_limit_remaining: int
    hourly_limit_remaining: int
    ad_id: str
    ad_type: str


class UnlockWithAdRequest(BaseModel):
    ad_id: str


class UnlockOut(BaseModel):
    granted: bool
    status: str
    episode_id: str
    method: str | None = None
    remaining_balance: int | None = None


class CheckInOut(BaseModel):
    coins_earned: int
    new_balance: int
    streak: int
    day_index: int


class CheckInStatusOut(BaseModel):
    claimed_today: bool
    streak: int
    next_payout: int


class PremiumUpdate(BaseModel):
    active: bool


class GiftRequest(BaseModel):
    amount: int = Field(..., gt=0)
    idempotency_key: str = Field(..., min_length=1)


class GiftOut(BaseModel):
    account_id: str
    new_balance: int
