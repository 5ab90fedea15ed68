"""Shared test fixtures and configuration."""

from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient

from valtify.accounts import AccountStore
from valtify.config import Settings
from valtify.crypto import PayloadCodec
from valtify.database import build_engine, build_session_factory
from valtify.hashing import CredentialHasher
from valtify.main import create_app
from valtify.models import base
from valtify.tokens import SessionIssuer
from valtify.vault import VaultStore

TEST_SECRET = "test-secret-key-for-signing-tokens"
TEST_MASTER_KEY = bytes(range(32))


@pytest.fixture
def database_url(tmp_path):
    """SQLite database in a per-test temporary directory."""
    return f"sqlite:///{tmp_path / 'valtify-test.db'}"


@pytest.fixture
def settings(database_url, tmp_path):
    """Settings with cheap argon2 costs and fixed keys."""
    return Settings(
        secret_key=TEST_SECRET,
        database_url=database_url,
        database_timeout=5,
        token_ttl_minutes=60,
        vault_key=base64.b64encode(TEST_MASTER_KEY).decode("ascii"),
        key_file=str(tmp_path / "unused.key"),
        argon2_time_cost=1,
        argon2_memory_cost=1024,
        argon2_parallelism=1,
        min_password_length=6,
        cors_origins=["http://localhost:3000"],
    )


@pytest.fixture
def hasher():
    return CredentialHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def secret_key():
    return TEST_SECRET


@pytest.fixture
def issuer(secret_key):
    return SessionIssuer(secret_key, ttl_minutes=60)


@pytest.fixture
def codec():
    return PayloadCodec(TEST_MASTER_KEY)


@pytest.fixture
def session_factory(database_url):
    """Session factory over a freshly created schema."""
    engine = build_engine(database_url)
    base.metadata.create_all(bind=engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def accounts(db):
    return AccountStore(db)


@pytest.fixture
def vault(db):
    return VaultStore(db)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client):
    """Factory that registers an account and returns (account_id, auth headers)."""

    def _register_user(email: str = "alice@example.com", password: str = "secret1"):
        response = client.post("/api/register", json={"email": email, "password": password})
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}

    return _register_user
