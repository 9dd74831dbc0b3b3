"""Profile endpoint for the signed-in account."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from gateway.views.uploads import parse_account_form

if TYPE_CHECKING:
    from starlette.requests import Request

    from accounts.auth.profile import ProfileService


async def update_profile(request: Request) -> JSONResponse:
    """PUT /api/auth/profile - change username, email, and/or avatar in one update."""
    profile_service: ProfileService = request.app.state.profile_service
    form = await parse_account_form(request)

    account = await profile_service.update_profile(
        request.user.account_id,
        username=form.get("username"),
        email=form.get("email"),
        avatar=form.avatar,
    )
    return JSONResponse({"message": "Profile updated successfully", "user": account.to_public().to_json()})
