"""
Genuine failures of the economy engine.

Rejections (limits, replay, insufficient funds, already granted) are typed
outcomes in economy.schemas.outcomes, not exceptions.
"""


class EconomyError(Exception):
    pass


class AccountNotFoundError(EconomyError):
    pass


class StorageFailure(EconomyError):
    """Transaction could not commit. Retryable; no partial effect may be assumed."""


class CatalogError(EconomyError):
    pass


class EpisodeNotFoundError(CatalogError):
    pass
