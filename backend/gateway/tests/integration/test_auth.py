"""Integration tests for register, login, logout, and session check endpoints."""

from __future__ import annotations

import time
from io import BytesIO
from unittest.mock import AsyncMock, patch

from PIL import Image
from starlette.testclient import TestClient

from accounts.auth.cookies import SESSION_COOKIE
from accounts.auth.tokens import issue_session_token
from accounts.dal.account_repository import RepositoryError
from gateway.views.uploads import AVATAR_FIELD

TEST_SECRET = "integration-token-secret"


def _png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), "red").save(buffer, format="PNG")
    return buffer.getvalue()


PNG_BYTES = _png_bytes()


def _use_token(client: TestClient, token: str) -> None:
    """Replace whatever session cookie the client holds with ``token``."""
    client.cookies.clear()
    client.cookies.set(SESSION_COOKIE, token)


class TestRegister:
    def test_register_returns_profile_and_sets_cookie(self, client):
        response = client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "Alice@Example.com", "password": "password123"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User registered successfully"
        assert body["user"]["username"] == "alice"
        assert body["user"]["email"] == "alice@example.com"
        assert body["user"]["avatarUrl"] is None
        assert set(body["user"]) == {"id", "username", "email", "avatarUrl"}
        assert SESSION_COOKIE in response.cookies

    def test_cookie_flags(self, client):
        response = client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "password123"},
        )

        header = response.headers["set-cookie"].lower()
        assert "httponly" in header
        assert "samesite=strict" in header
        assert "max-age=86400" in header
        assert "path=/" in header

    def test_register_multipart_with_avatar(self, client, asset_store):
        response = client.post(
            "/api/auth/register",
            data={"username": "alice", "email": "alice@example.com", "password": "password123"},
            files={AVATAR_FIELD: ("me.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 201
        avatar_url = response.json()["user"]["avatarUrl"]
        assert avatar_url == f"https://cdn.test/{asset_store.uploaded[0]}"

    def test_register_rejects_non_image(self, client, asset_store):
        response = client.post(
            "/api/auth/register",
            data={"username": "alice", "email": "alice@example.com", "password": "password123"},
            files={AVATAR_FIELD: ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Only image files are allowed!", "kind": "ValidationFailed"}
        assert asset_store.uploaded == []

    def test_duplicate_email_conflicts(self, client, registered):
        response = client.post(
            "/api/auth/register",
            json={"username": "bob", "email": "alice@example.com", "password": "password123"},
        )

        assert response.status_code == 409
        assert response.json() == {"message": "User already exists", "kind": "AlreadyExists"}

    def test_validation_error(self, client):
        response = client.post(
            "/api/auth/register",
            json={"username": "al", "email": "alice@example.com", "password": "password123"},
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "ValidationFailed"

    def test_missing_fields_are_validation_errors(self, client):
        response = client.post("/api/auth/register", json={})

        assert response.status_code == 400
        assert response.json() == {"message": "Username is required", "kind": "ValidationFailed"}

    def test_storage_failure_is_503(self, client, asset_store):
        asset_store.fail_upload = True

        response = client.post(
            "/api/auth/register",
            data={"username": "alice", "email": "alice@example.com", "password": "password123"},
            files={AVATAR_FIELD: ("me.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 503
        assert response.json()["kind"] == "StorageUnavailable"

    def test_oversized_form_field_is_validation_error(self, client):
        response = client.post(
            "/api/auth/register",
            data={"username": "alice", "email": "alice@example.com", "password": "x" * (1024 * 1024 + 10)},
            files={AVATAR_FIELD: ("me.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "ValidationFailed"
        assert "maximum size" in response.json()["message"]

    def test_form_content_type_is_case_insensitive(self, client):
        response = client.post(
            "/api/auth/register",
            content=b"username=alice&email=alice%40example.com&password=password123",
            headers={"content-type": "Application/X-WWW-Form-Urlencoded"},
        )

        assert response.status_code == 201
        assert response.json()["user"]["username"] == "alice"

    def test_undecodable_avatar_is_rejected(self, client, asset_store):
        response = client.post(
            "/api/auth/register",
            data={"username": "alice", "email": "alice@example.com", "password": "password123"},
            files={AVATAR_FIELD: ("me.png", b"not really a png", "image/png")},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Profile picture is not a valid image", "kind": "ValidationFailed"}
        assert asset_store.uploaded == []


class TestLogin:
    def test_register_then_login_returns_same_id(self, client, registered):
        client.cookies.clear()
        response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "password123"})

        assert response.status_code == 200
        assert response.json()["message"] == "Login successful"
        assert response.json()["user"]["id"] == registered["id"]
        assert SESSION_COOKIE in response.cookies

    def test_login_accepts_form_body(self, client, registered):
        response = client.post("/api/auth/login", data={"email": "alice@example.com", "password": "password123"})
        assert response.status_code == 200

    def test_wrong_password_and_unknown_email_are_identical(self, client, registered):
        wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope-nope"})
        unknown = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "password123"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"message": "Invalid credentials", "kind": "InvalidCredentials"}
        assert SESSION_COOKIE not in wrong.cookies

    def test_login_does_not_revoke_earlier_tokens(self, client, registered):
        first_token = client.cookies[SESSION_COOKIE]
        client.post("/api/auth/login", json={"email": "alice@example.com", "password": "password123"})

        _use_token(client, first_token)
        assert client.get("/api/auth/check").status_code == 200


class TestCheckAuth:
    def test_returns_current_profile(self, client, registered):
        response = client.get("/api/auth/check")

        assert response.status_code == 200
        assert response.json() == {"user": registered}

    def test_without_cookie_is_401(self, client):
        response = client.get("/api/auth/check")

        assert response.status_code == 401
        assert response.json() == {"message": "Not authenticated", "kind": "Unauthenticated"}

    def test_tampered_cookie_is_401(self, client, registered):
        token = client.cookies[SESSION_COOKIE]
        _use_token(client, "x" + token)

        response = client.get("/api/auth/check")
        assert response.status_code == 401
        assert response.json()["kind"] == "Unauthenticated"

    def test_expired_cookie_is_401(self, client, registered):
        stale = issue_session_token(registered["id"], TEST_SECRET, now=time.time() - 25 * 3600)
        _use_token(client, stale)

        assert client.get("/api/auth/check").status_code == 401

    def test_token_for_unknown_account_is_401(self, client):
        _use_token(client, issue_session_token("no-such-account", TEST_SECRET))
        assert client.get("/api/auth/check").status_code == 401

    def test_trailing_slash_still_guarded(self, client):
        response = client.get("/api/auth/check/")
        assert response.status_code == 401
        assert response.json()["kind"] == "Unauthenticated"

    def test_storage_failure_is_503(self, client, app, registered):
        with patch.object(app.state.auth_service, "check_auth", AsyncMock(side_effect=RepositoryError("locked"))):
            response = client.get("/api/auth/check")

        assert response.status_code == 503
        assert response.json()["kind"] == "StorageUnavailable"


class TestLogout:
    def test_logout_clears_cookie(self, client, registered):
        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"message": "Logout successful"}
        assert "max-age=0" in response.headers["set-cookie"].lower()
        assert client.get("/api/auth/check").status_code == 401

    def test_logout_without_session_is_allowed(self, client):
        assert client.post("/api/auth/logout").status_code == 200

    def test_token_stays_valid_after_logout(self, client, registered):
        token = client.cookies[SESSION_COOKIE]
        client.post("/api/auth/logout")

        _use_token(client, token)
        assert client.get("/api/auth/check").status_code == 200


class TestServer:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "version" in response.json()

    def test_index(self, client):
        assert client.get("/").json() == {"message": "Welcome to the accounts service!"}

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"

    def test_unknown_route_is_json_404(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.json() == {"message": "Not Found"}

    def test_cors_preflight_allows_credentials(self, client):
        response = client.options(
            "/api/auth/profile",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "PUT",
                "Access-Control-Request-Headers": "content-type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_unexpected_error_is_generic_500(self, app):
        with TestClient(app, raise_server_exceptions=False) as client:
            with patch.object(app.state.auth_service, "login", AsyncMock(side_effect=RuntimeError("boom"))):
                response = client.post("/api/auth/login", json={"email": "a@example.com", "password": "password123"})

        assert response.status_code == 500
        assert response.json()["message"] == "Something went wrong!"
        assert response.json()["detail"] == "boom"
