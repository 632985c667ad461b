"""
Shared fixtures for the identity service tests.
"""
import pytest
from datetime import timedelta
from fastapi.testclient import TestClient

from identity_platform.identity_platform.identity_service.accounts import AccountService
from identity_platform.identity_platform.identity_service.auth import PasswordHasher, TokenIssuer
from identity_platform.identity_platform.identity_service.config import Settings
from identity_platform.identity_platform.identity_service.db import ConnectionPoolManager, init_db
from identity_platform.identity_platform.identity_service.executor import QueryExecutor
from identity_platform.identity_platform.identity_service.main import create_app
from identity_platform.identity_platform.identity_service.store import AccountStore

TEST_SECRET = "test-signing-secret"  # pragma: allowlist secret
TEST_ROUNDS = 1000


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        DATABASE_URL=f"sqlite:///{tmp_path / 'identity.db'}",
        DB_POOL_SIZE=5,
        DB_CONNECT_TIMEOUT_SECONDS=5,
        DB_STARTUP_RETRIES=1,
        DB_RETRY_DELAY_SECONDS=0,
        DB_DRAIN_TIMEOUT_SECONDS=5,
        JWT_SECRET=TEST_SECRET,
        PASSWORD_HASH_ROUNDS=TEST_ROUNDS,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def pool(settings):
    pool = ConnectionPoolManager.from_settings(settings)
    pool.initialize()
    init_db(pool)
    yield pool
    pool.close(drain_timeout=1)


@pytest.fixture
def executor(pool):
    return QueryExecutor(pool)


@pytest.fixture
def store(executor):
    return AccountStore(executor)


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def issuer():
    return TokenIssuer(TEST_SECRET, ttl=timedelta(minutes=5))


@pytest.fixture
def service(store, hasher, issuer):
    return AccountService(store, hasher, issuer, min_password_length=6)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
