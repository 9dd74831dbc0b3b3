"""Auth endpoints: register, login, logout, and session check."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from accounts.auth.cookies import clear_session_cookie, set_session_cookie
from accounts.auth.tokens import issue_session_token
from gateway.views.uploads import parse_account_form

if TYPE_CHECKING:
    from starlette.requests import Request

    from accounts.auth.models import Account
    from accounts.auth.service import AuthService
    from accounts.auth.settings import AuthSettings


def _session_response(request: Request, account: Account, message: str, status_code: int) -> JSONResponse:
    """Build a profile response carrying a freshly minted session cookie."""
    auth_settings: AuthSettings = request.app.state.auth_settings
    response = JSONResponse({"message": message, "user": account.to_public().to_json()}, status_code=status_code)
    token = issue_session_token(account.account_id, auth_settings.token_secret)
    set_session_cookie(response, token, secure=auth_settings.cookie_secure)
    return response


async def register(request: Request) -> JSONResponse:
    """POST /api/auth/register - create an account, optionally with an avatar, and sign it in."""
    auth_service: AuthService = request.app.state.auth_service
    form = await parse_account_form(request)

    account = await auth_service.register(
        form.get("username") or "",
        form.get("email") or "",
        form.get("password") or "",
        avatar=form.avatar,
    )
    return _session_response(request, account, "User registered successfully", HTTPStatus.CREATED)


async def login(request: Request) -> JSONResponse:
    """POST /api/auth/login - check credentials and set the session cookie."""
    auth_service: AuthService = request.app.state.auth_service
    form = await parse_account_form(request, allow_avatar=False)

    account = await auth_service.login(form.get("email") or "", form.get("password") or "")
    return _session_response(request, account, "Login successful", HTTPStatus.OK)


async def logout(request: Request) -> JSONResponse:
    """POST /api/auth/logout - clear the cookie. The token stays valid until it expires."""
    auth_settings: AuthSettings = request.app.state.auth_settings
    response = JSONResponse({"message": "Logout successful"})
    clear_session_cookie(response, secure=auth_settings.cookie_secure)
    return response


async def check_auth(request: Request) -> JSONResponse:
    """GET /api/auth/check - return the profile behind the current session."""
    auth_service: AuthService = request.app.state.auth_service
    account = await auth_service.check_auth(request.user.account_id)
    return JSONResponse({"user": account.to_public().to_json()})
