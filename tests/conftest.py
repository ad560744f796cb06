"""
Pytest configuration and fixtures for backend tests.
"""

import os
import secrets
import tempfile

# Settings are read at import time; these must be in place before any
# backend module is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-use")
os.environ["PASSWORD_ROUNDS"] = "1000"
os.environ.setdefault("STAGING_DIR", tempfile.mkdtemp(prefix="vaultkeeper-staging-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from client.client import VaultClient
from core.crypter import Crypter
from core.rpc import get_retry_policy, get_staging
from database import Base, get_db
from storage.retry import RetryPolicy
from storage.staging import StagingStore

CHUNK_SIZE = 1024

# In-memory SQLite shared by every session of a test
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=test_engine,
)


@pytest.fixture(scope="function")
def db_session():
    """Create the schema and hand out a session; drop everything afterwards."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def staging(tmp_path) -> StagingStore:
    return StagingStore(tmp_path / "staging", CHUNK_SIZE)


@pytest.fixture(scope="function")
def client(db_session, staging) -> TestClient:
    """Create a test client wired to the test database and staging area."""

    def override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_staging] = lambda: staging
    app.dependency_overrides[get_retry_policy] = lambda: RetryPolicy(max_attempts=2, initial_delay=0, delay_increment=0)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def crypter() -> Crypter:
    return Crypter(secrets.token_bytes(32))


@pytest.fixture
def make_vault(client, crypter):
    """
    Factory for VaultClients.  Each one gets its own TestClient so the
    captured tokens of different users never mix.
    """
    opened = []

    def factory(key: Crypter = None) -> VaultClient:
        vault = VaultClient(key or crypter, TestClient(app))
        opened.append(vault)
        return vault

    yield factory

    for vault in opened:
        vault.close()


def register(client: TestClient, login: str, password: str = "s3cret") -> dict:
    """Register *login* and return request headers carrying its token."""
    response = client.post("/auth/register", json={"login": login, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}
