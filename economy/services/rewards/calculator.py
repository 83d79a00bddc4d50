"""
Pure reward arithmetic: ad type -> coins, country -> daily cap. No state, no I/O.
"""
from __future__ import annotations

from enum import Enum

from economy.services.economy_config import EconomyConfig


class AdType(str, Enum):
    REWARDED = "rewarded"
    INTERSTITIAL = "interstitial"
    BANNER = "banner"


BANNER_COINS = 1


def reward_for(ad_type: AdType | str, base_coins_per_ad: int) -> int:
    """Raises ValueError for an unknown ad type."""
    ad_type = AdType(ad_type)
    if ad_type is AdType.INTERSTITIAL:
        return base_coins_per_ad // 2
    if ad_type is AdType.BANNER:
        return BANNER_COINS
    return base_coins_per_ad


def daily_limit_for(country_code: str | None, config: EconomyConfig) -> int:
    """Tier-A (high eCPM) countries get a higher daily cap. Unknown or missing -> standard cap."""
    if not country_code:
        return config.daily_limit
    if country_code.strip().upper() in config.tier_a_countries:
        return config.tier_a_daily_limit
    return config.daily_limit
