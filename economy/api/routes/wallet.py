from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from economy.api.deps import get_account_id, get_config, get_country_code
from economy.core.config import settings
from economy.db.session import get_db
from economy.schemas.wallet import (
    AdRewardOut,
    AdRewardRequest,
    LedgerEntryOut,
    WalletHistoryOut,
    WalletOut,
)
from economy.services.economy.service import EconomyService
from economy.services.economy_config import EconomyConfig


router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("", response_model=WalletOut)
def get_wallet(
    account_id: str = Depends(get_account_id),
    db: Session = Depends(get_db),
    config: EconomyConfig = Depends(get_config),
) -> WalletOut:
    return EconomyService(db, config).get_wallet(account_id)


@router.get("/history", response_model=WalletHistoryOut)
def get_wallet_history(
    limit: int = Query(default=settings.history_default_limit, ge=1, le=100),
    account_id: str = Depends(get_account_id),
    db: Session = Depends(get_db),
    config: EconomyConfig = Depends(get_config),
) -> WalletHistoryOut:
    entries = EconomyService(db, config).get_wallet_history(account_id, limit)
    history = [LedgerEntryOut.model_validate(e) for e in entries]
    return WalletHistoryOut(history=history, total_transactions=len(history))


@router.post("/ads/reward", response_model=AdRewardOut)
def reward_coins_for_ad(
    payload: AdRewardRequest,
    account_id: str = Depends(get_account_id),
    country_code: str | None = Depends(get_country_code),
    db: Session = Depends(get_db),
    config: EconomyConfig = Depends(get_config),
) -> AdRewardOut:
    outcome = EconomyService(db, config).reward_for_ad(
        account_id, payload.ad_id, payload.ad_type, country_code
    )
    if not outcome.granted:
        raise HTTPException(
            400,
            {
                "error": "Invalid ad or limit reached",
                "error_code": outcome.error_code.value,
                "reason": outcome.reason,
                "daily_limit_remaining": outcome.daily_remaining,
                "hourly_limit_remaining": outcome.hourly_remaining,
                "cooldown_seconds": outcome.cooldown_seconds,
            },
        )
    return AdRewardOut(
        coins_earned=outcome.coins_earned,
        new_balance=outcome.new_balance,
        daily_limit_remaining=outcome.daily_remaining,
        hourly_limit_remaining=outcome.hourly_remaining,
        ad_id=payload.ad_id,
        ad_type=payload.ad_type,
    )
