import os
from typing import Generator

# configuration is read once at import time
os.environ["ENCODE_KEY"] = "test-encode-key-with-enough-length-for-hs256"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_WALLETS"] = ""
os.environ.pop("REDIS_HOST", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from fst_auth.core.challenge_store import ChallengeStore
from fst_auth.core.config import settings
from fst_auth.core.dependencies import get_challenge_store
from fst_auth.core.kv_store import MemoryKeyValueStore
from fst_auth.db.base import Base
from fst_auth.db.session import get_db
from tests.helpers import FakeClock, Wallet


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite://"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db() -> Generator:
    """Override database dependency for testing"""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture
def wallet() -> Wallet:
    return Wallet()


@pytest.fixture
def other_wallet() -> Wallet:
    return Wallet()


@pytest.fixture
def admin_wallet(monkeypatch) -> Wallet:
    """A wallet on the ADMIN_WALLETS allow-list, upper-cased to exercise case folding"""
    admin = Wallet()
    monkeypatch.setattr(settings, "ADMIN_WALLETS", f"SomeOtherWallet, {admin.address.upper()}")
    return admin


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def challenge_store(clock) -> ChallengeStore:
    return ChallengeStore(MemoryKeyValueStore(), ttl_seconds=300, clock=clock)


@pytest.fixture
def db_session() -> Generator:
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session, challenge_store) -> TestClient:
    """Create a test client for the FastAPI application"""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_challenge_store] = lambda: challenge_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
