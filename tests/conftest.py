"""
Shared fixtures: an in-memory SQLite database per test, shared by every
session created from `session_factory` (StaticPool = one connection).
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CB_USE_REDIS", "false")

from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import economy.models  # noqa: F401  (registers tables on Base.metadata)
from economy.db.base import Base
from economy.services.ledger.service import LedgerService


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def dispatch_mock():
    """Unlock notifications go through Celery; never hit a broker in tests."""
    with patch("economy.services.unlocks.service.dispatch_content_unlocked") as mock:
        yield mock


@pytest.fixture
def make_account(db):
    def _make(account_id: str = "acc-1", balance: int = 0, premium: bool = False) -> str:
        ledger = LedgerService(db)
        ledger.get_or_create_account(account_id)
        if balance:
            ledger.grant_gift(account_id, balance, f"seed-{account_id}")
        if premium:
            ledger.set_premium_override(account_id, True)
        return account_id

    return _make
