from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from economy.api.deps import get_account_id, get_catalog, get_config
from economy.db.session import get_db
from economy.schemas.outcomes import UnlockOutcome, UnlockStatus
from economy.schemas.wallet import UnlockOut, UnlockWithAdRequest
from economy.services.catalog.client import CatalogClient
from economy.services.economy.service import EconomyService
from economy.services.economy_config import EconomyConfig


router = APIRouter(prefix="/episodes", tags=["unlocks"])


def _to_out(outcome: UnlockOutcome) -> UnlockOut:
    return UnlockOut(
        granted=outcome.granted,
        status=outcome.status.value,
        episode_id=outcome.content_id,
        method=outcome.method,
        remaining_balance=outcome.remaining_balance,
    )


@router.post("/{episode_id}/unlock", response_model=UnlockOut)
def unlock_episode(
    episode_id: str,
    account_id: str = Depends(get_account_id),
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
    config: EconomyConfig = Depends(get_config),
) -> UnlockOut:
    episode = catalog.get_episode(episode_id)
    outcome = EconomyService(db, config).unlock_content(account_id, episode)
    if outcome.status is UnlockStatus.INSUFFICIENT_FUNDS:
        raise HTTPException(
            402,
            {
                "error": "Insufficient coins",
                "required": outcome.required,
                "available": outcome.remaining_balance,
            },
        )
    return _to_out(outcome)


@router.post("/{episode_id}/unlock/ad", response_model=UnlockOut)
def unlock_episode_with_ad(
    episode_id: str,
    payload: UnlockWithAdRequest,
    account_id: str = Depends(get_account_id),
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog),
    config: EconomyConfig = Depends(get_config),
) -> UnlockOut:
    episode = catalog.get_episode(episode_id)
    outcome = EconomyService(db, config).unlock_content_with_ad(account_id, episode, payload.ad_id)
    if outcome.status is UnlockStatus.NOT_REQUIRED:
        raise HTTPException(400, "Episode is already free")
    if outcome.status is UnlockStatus.AD_REJECTED:
        raise HTTPException(400, {"error": "Invalid ad", "error_code": outcome.ad_error_code.value})
    return _to_out(outcome)
