"""Tests for gateway ASGI middleware."""

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from gateway.server.middleware import SECURITY_HEADERS, SecurityHeadersMiddleware, SlashNormalizationMiddleware


async def _path(request: Request) -> PlainTextResponse:
    return PlainTextResponse(request.url.path)


def _client() -> TestClient:
    app = Starlette(routes=[Route("/", _path), Route("/api/auth/check", _path)])
    app.add_middleware(SlashNormalizationMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    return TestClient(app)


class TestSecurityHeaders:
    def test_headers_added(self):
        response = _client().get("/")
        for name, value in SECURITY_HEADERS:
            assert response.headers[name.decode()] == value.decode()


class TestSlashNormalization:
    def test_trailing_slash_stripped(self):
        response = _client().get("/api/auth/check/", follow_redirects=False)
        assert response.status_code == 200
        assert response.text == "/api/auth/check"

    def test_root_untouched(self):
        assert _client().get("/").text == "/"
