"""
Typed outcomes of the economy engines. Rejections are values, not exceptions.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class RejectionCode(str, Enum):
    INVALID_TOKEN = "invalid_token"
    INVALID_AD_TYPE = "invalid_ad_type"
    COOLDOWN = "cooldown"
    DAILY_LIMIT = "daily_limit"
    HOURLY_LIMIT = "hourly_limit"
    REPLAY = "replay"


REJECTION_REASONS = {
    RejectionCode.INVALID_TOKEN: "invalid token",
    RejectionCode.INVALID_AD_TYPE: "invalid ad type",
    RejectionCode.COOLDOWN: "cooldown active",
    RejectionCode.DAILY_LIMIT: "daily limit reached",
    RejectionCode.HOURLY_LIMIT: "hourly limit reached",
    RejectionCode.REPLAY: "token already used",
}


class InsufficientFunds(BaseModel):
    required: int
    available: int

    model_config = {"frozen": True}


class ReconciliationReport(BaseModel):
    account_id: str
    balance: int
    ledger_sum: int

    model_config = {"frozen": True}

    @property
    def consistent(self) -> bool:
        return self.balance == self.ledger_sum


# ----- Fraud guard -----


class AdEligibility(BaseModel):
    """Result of FraudGuard.evaluate. Remaining figures already account for the pending watch."""

    eligible: bool
    error_code: RejectionCode | None = None
    cooldown_seconds: int = 0
    daily_remaining: int = 0
    hourly_remaining: int = 0

    model_config = {"frozen": True}

    @property
    def reason(self) -> str:
        if self.error_code is None:
            return "valid"
        return REJECTION_REASONS[self.error_code]

    @classmethod
    def reject(cls, code: RejectionCode, **kwargs) -> "AdEligibility":
        return cls(eligible=False, error_code=code, **kwargs)


# ----- Ad reward -----


class AdRewardOutcome(BaseModel):
    granted: bool
    coins_earned: int = 0
    new_balance: int | None = None
    daily_remaining: int = 0
    hourly_remaining: int = 0
    cooldown_seconds: int = 0
    error_code: RejectionCode | None = None

    model_config = {"frozen": True}

    @property
    def reason(self) -> str:
        if self.error_code is None:
            return "coins rewarded"
        return REJECTION_REASONS[self.error_code]

    @classmethod
    def rejected(cls, eligibility: AdEligibility) -> "AdRewardOutcome":
        return cls(
            granted=False,
            error_code=eligibility.error_code,
            cooldown_seconds=eligibility.cooldown_seconds,
            daily_remaining=eligibility.daily_remaining,
            hourly_remaining=eligibility.hourly_remaining,
        )


# ----- Unlock -----


class UnlockStatus(str, Enum):
    GRANTED = "granted"
    ALREADY_GRANTED = "already_granted"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    # Ad unlock only
    NOT_REQUIRED = "not_required"
    AD_REJECTED = "ad_rejected"


class UnlockOutcome(BaseModel):
    status: UnlockStatus
    content_id: str
    method: str | None = Field(
        None, description="COIN / AD / SUB (premium); None for free content and already-granted outcomes"
    )
    remaining_balance: int | None = None
    required: int | None = None
    ad_error_code: RejectionCode | None = None

    model_config = {"frozen": True}

    @property
    def granted(self) -> bool:
        return self.status in (UnlockStatus.GRANTED, UnlockStatus.ALREADY_GRANTED)


# ----- Check-in -----


class CheckInResultStatus(str, Enum):
    GRANTED = "granted"
    ALREADY_CLAIMED = "already_claimed"


class CheckInOutcome(BaseModel):
    status: CheckInResultStatus
    coins_earned: int = 0
    new_balance: int | None = None
    streak: int = 0
    day_index: int = 0

    model_config = {"frozen": True}


class CheckInState(BaseModel):
    claimed_today: bool
    streak: int
    next_payout: int

    model_config = {"frozen": True}
