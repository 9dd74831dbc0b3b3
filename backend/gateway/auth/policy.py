"""Per-route authentication policy.

Every Route endpoint is wrapped in ``protected_api`` or ``public_route``.
``create_app`` refuses to build an app with an unmarked Route, and the 401
handler uses the protected paths to render the uniform Unauthenticated body.
"""

from __future__ import annotations

import functools
from enum import StrEnum
from http import HTTPStatus
from typing import TYPE_CHECKING

from starlette.authentication import requires
from starlette.routing import Route

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from typing import Any

    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.routing import BaseRoute

AUTH_POLICY_ATTR = "__auth_policy__"


class RoutePolicy(StrEnum):
    PROTECTED = "protected_api"
    PUBLIC = "public"


def _policy_of(route: Route) -> RoutePolicy | None:
    return getattr(route.endpoint, AUTH_POLICY_ATTR, None)


def protected_api(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Answer 401 unless the session cookie resolved to an account."""
    guarded = requires("authenticated", status_code=HTTPStatus.UNAUTHORIZED)(endpoint)
    setattr(guarded, AUTH_POLICY_ATTR, RoutePolicy.PROTECTED)
    return guarded


def public_route(endpoint: Callable[..., Awaitable[Response]]) -> Callable[..., Awaitable[Response]]:
    """Open an async endpoint to anonymous callers.

    The marker is set on a new wrapper, so the bare handler registered on
    another route is still reported as unclassified.
    """

    @functools.wraps(endpoint)
    async def open_endpoint(request: Request, **path_params: str) -> Response:
        return await endpoint(request, **path_params)

    setattr(open_endpoint, AUTH_POLICY_ATTR, RoutePolicy.PUBLIC)
    return open_endpoint


def collect_protected_api_paths(routes: list[BaseRoute]) -> set[str]:
    return {route.path for route in routes if isinstance(route, Route) and _policy_of(route) is RoutePolicy.PROTECTED}


def validate_route_auth_policy(routes: list[BaseRoute]) -> None:
    """Raise RuntimeError naming every Route without a policy. Mounts (static media) are skipped."""
    unclassified = [
        f"{route.path} ({route.name})" for route in routes if isinstance(route, Route) and _policy_of(route) is None
    ]
    if unclassified:
        msg = f"Unclassified routes missing auth policy: {', '.join(unclassified)}"
        raise RuntimeError(msg)
