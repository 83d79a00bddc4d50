"""
Unit-of-work helpers. Engines flush as they go and commit once; any storage error
that is not an expected uniqueness conflict surfaces as a retryable StorageFailure.
"""
import functools
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from economy.services.errors import StorageFailure

logger = logging.getLogger(__name__)


def _fail(db: Session, operation: str, exc: SQLAlchemyError, stage: str) -> StorageFailure:
    db.rollback()
    logger.error(
        "economy_storage_failure",
        extra={"reason": operation, "kind": stage, "error": type(exc).__name__},
        exc_info=exc,
    )
    return StorageFailure(f"{operation}: {stage} failed")


def commit_or_fail(db: Session, operation: str) -> None:
    """Commit the unit of work; on any storage error roll it back whole and raise StorageFailure."""
    try:
        db.commit()
    except SQLAlchemyError as exc:
        raise _fail(db, operation, exc, "commit") from exc


def storage_operation(operation: str):
    """
    Wrap a service method (on an object with a `db` session) as one unit of work.

    IntegrityError passes through untouched: callers that expect one handle it inline,
    anything else escaping is a programming error, not a transient failure.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except IntegrityError:
                raise
            except SQLAlchemyError as exc:
                raise _fail(self.db, operation, exc, "statement") from exc

        return wrapper

    return decorator
