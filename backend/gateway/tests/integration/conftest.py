"""App and client fixtures for gateway integration tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from starlette.testclient import TestClient

from accounts.auth.password import SimpleHasher
from accounts.auth.settings import AuthSettings
from accounts.storage.settings import StorageSettings
from gateway.server.app import create_app
from gateway.server.settings import GatewaySettings

if TYPE_CHECKING:
    from pathlib import Path

    from starlette.applications import Starlette

TEST_SECRET = "integration-token-secret"


@pytest.fixture
def auth_settings(tmp_path: Path) -> AuthSettings:
    return AuthSettings(
        token_secret=TEST_SECRET,
        database_path=str(tmp_path / "accounts.db"),
        password_hasher="simple",
        environment="test",
    )


@pytest.fixture
def storage_settings(tmp_path: Path) -> StorageSettings:
    return StorageSettings(backend="local", local_dir=str(tmp_path / "media"), public_url_prefix="/media/avatars")


@pytest.fixture
def app(auth_settings, storage_settings, asset_store) -> Starlette:
    return create_app(
        settings=GatewaySettings(),
        auth_settings=auth_settings,
        storage_settings=storage_settings,
        asset_store=asset_store,
        password_hasher=SimpleHasher(),
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def registered(client) -> dict:
    """Register alice; the client keeps her session cookie."""
    response = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "alice@example.com", "password": "password123"},
    )
    assert response.status_code == 201
    return response.json()["user"]
