"""
Economy config: explicit value object built from app settings.

Engines never read settings directly: each call receives an EconomyConfig so
tests (and per-request overrides) can vary limits without touching globals.
"""
from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from economy.core.config import settings

DEFAULT_CHECKIN_PAYOUTS = (10, 15, 20, 25, 30, 40, 100)


class EconomyConfig(BaseModel):
    coins_per_ad: int = Field(10, ge=0)
    daily_limit: int = Field(10, ge=0)
    hourly_limit: int = Field(3, ge=0)
    cooldown_minutes: int = Field(5, ge=0)
    tier_a_countries: frozenset[str] = frozenset()
    tier_a_daily_limit: int = Field(20, ge=0)
    replay_window_minutes: int = Field(5, ge=0)
    token_min_length: int = Field(10, ge=1)
    checkin_payouts: tuple[int, ...] = DEFAULT_CHECKIN_PAYOUTS

    model_config = {"frozen": True}

    @field_validator("tier_a_countries", mode="before")
    @classmethod
    def normalize_countries(cls, v):
        return frozenset(str(c).strip().upper() for c in v if str(c).strip())

    @field_validator("checkin_payouts")
    @classmethod
    def validate_payouts(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if not v:
            raise ValueError("checkin_payouts must not be empty")
        if any(p < 0 for p in v):
            raise ValueError("checkin_payouts must be non-negative")
        return v


def get_economy_config() -> EconomyConfig:
    return EconomyConfig(
        coins_per_ad=settings.ad_reward_coins_per_ad,
        daily_limit=settings.ad_reward_daily_limit,
        hourly_limit=settings.ad_reward_hourly_limit,
        cooldown_minutes=settings.ad_reward_cooldown_minutes,
        tier_a_countries=settings.tier_a_countries_set,
        tier_a_daily_limit=settings.ad_tier_a_daily_limit,
        replay_window_minutes=settings.ad_replay_window_minutes,
        token_min_length=settings.ad_token_min_length,
        checkin_payouts=tuple(settings.checkin_payouts_list),
    )
