from economy.models.account import Account
from economy.models.ad_watch import AdWatchRecord
from economy.models.ledger_entry import LedgerEntry, LedgerKind, LedgerSource
from economy.models.unlock_grant import UnlockGrant, UnlockMethod

__all__ = [
    "Account",
    "AdWatchRecord",
    "LedgerEntry",
    "LedgerKind",
    "LedgerSource",
    "UnlockGrant",
    "UnlockMethod",
]
