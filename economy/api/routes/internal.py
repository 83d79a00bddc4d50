"""
Internal API for trusted collaborators: the subscription webhook ingester
(premium override) and support tooling (gifts, reconciliation).
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from economy.api.deps import require_admin
from economy.db.session import get_db
from economy.schemas.wallet import GiftOut, GiftRequest, PremiumUpdate, WalletOut
from economy.services.errors import AccountNotFoundError
from economy.services.ledger.service import LedgerService


router = APIRouter(prefix="/internal/accounts", tags=["internal"], dependencies=[Depends(require_admin)])


@router.post("/{account_id}/premium", response_model=WalletOut)
def set_premium(account_id: str, payload: PremiumUpdate, db: Session = Depends(get_db)) -> WalletOut:
    account = LedgerService(db).set_premium_override(account_id, payload.active)
    return WalletOut(coin_balance=account.balance, is_premium=account.premium_override)


@router.post("/{account_id}/gift", response_model=GiftOut)
def gift_coins(account_id: str, payload: GiftRequest, db: Session = Depends(get_db)) -> GiftOut:
    new_balance = LedgerService(db).grant_gift(account_id, payload.amount, payload.idempotency_key)
    return GiftOut(account_id=account_id, new_balance=new_balance)


@router.get("/{account_id}/reconcile")
def reconcile(account_id: str, db: Session = Depends(get_db)) -> dict:
    try:
        report = LedgerService(db).reconcile(account_id)
    except AccountNotFoundError:
        raise HTTPException(404, "Account not found")
    return {**report.model_dump(), "consistent": report.consistent}
