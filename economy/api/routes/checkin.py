from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from economy.api.deps import get_account_id, get_config
from economy.db.session import get_db
from economy.schemas.outcomes import CheckInResultStatus
from economy.schemas.wallet import CheckInOut, CheckInStatusOut
from economy.services.economy.service import EconomyService
from economy.services.economy_config import EconomyConfig


router = APIRouter(prefix="/checkin", tags=["checkin"])


@router.get("", response_model=CheckInStatusOut)
def check_in_status(
    account_id: str = Depends(get_account_id),
    db: Session = Depends(get_db),
    config: EconomyConfig = Depends(get_config),
) -> CheckInStatusOut:
    state = EconomyService(db, config).check_in_status(account_id)
    return CheckInStatusOut(**state.model_dump())


@router.post("", response_model=CheckInOut)
def daily_check_in(
    account_id: str = Depends(get_account_id),
    db: Session = Depends(get_db),
    config: EconomyConfig = Depends(get_config),
) -> CheckInOut:
    outcome = EconomyService(db, config).daily_check_in(account_id)
    if outcome.status is CheckInResultStatus.ALREADY_CLAIMED:
        raise HTTPException(409, {"error": "Already claimed today", "already_claimed": True})
    return CheckInOut(
        coins_earned=outcome.coins_earned,
        new_balance=outcome.new_balance,
        streak=outcome.streak,
        day_index=outcome.day_index,
    )
