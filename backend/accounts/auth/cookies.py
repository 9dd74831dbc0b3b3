"""HTTP cookie transport for session tokens."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from accounts.auth.tokens import SESSION_TTL_SECONDS

if TYPE_CHECKING:
    from starlette.responses import Response

SESSION_COOKIE = "session_token"
COOKIE_PATH = "/"
COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "strict"


def set_session_cookie(response: Response, token: str, *, secure: bool) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        secure=secure,
        samesite=COOKIE_SAMESITE,
        max_age=SESSION_TTL_SECONDS,
        path=COOKIE_PATH,
    )


def clear_session_cookie(response: Response, *, secure: bool) -> None:
    """Drop the cookie client-side. The token itself stays valid until it expires."""
    response.delete_cookie(
        key=SESSION_COOKIE,
        path=COOKIE_PATH,
        secure=secure,
        httponly=True,
        samesite=COOKIE_SAMESITE,
    )
