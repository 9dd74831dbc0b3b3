from __future__ import annotations

import contextlib
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import anyio.to_thread
import structlog
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles

from accounts.auth import AuthError, AuthService, AuthSettings, ProfileService, UnauthenticatedError, get_hasher
from accounts.dal.account_repository import RepositoryError
from accounts.db import Database, SqliteAccountRepository
from accounts.logging import setup_logging
from accounts.storage import LocalAssetStore, MinioAssetStore, StorageSettings, get_asset_store
from gateway.auth.backend import SessionCookieBackend
from gateway.auth.policy import collect_protected_api_paths, protected_api, public_route, validate_route_auth_policy
from gateway.server.build_info import APP_VERSION, GIT_COMMIT
from gateway.server.middleware import SecurityHeadersMiddleware, SlashNormalizationMiddleware
from gateway.server.settings import GatewaySettings
from gateway.views import check_auth, login, logout, register, update_profile

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from starlette.requests import Request

    from accounts.auth.password import PasswordHasher
    from accounts.storage import AssetStore

INTERNAL_ERROR_MESSAGE = "Something went wrong!"


def _error_response(message: str, kind: str, status_code: int) -> JSONResponse:
    return JSONResponse({"message": message, "kind": kind}, status_code=status_code)


async def _auth_error_handler(_request: Request, exc: Exception) -> Response:
    """Render a domain failure with its stable kind and status."""
    error = cast("AuthError", exc)
    return _error_response(error.message, error.kind, error.status_code)


async def _repository_error_handler(request: Request, exc: Exception) -> Response:
    logger.error("account storage failed", path=request.url.path, exc_info=exc)
    return _error_response("Storage is temporarily unavailable", "StorageUnavailable", HTTPStatus.SERVICE_UNAVAILABLE)


def _make_http_error_handler(
    protected_api_paths: set[str],
) -> Callable[[Request, Exception], Awaitable[Response]]:
    """Build an HTTPException handler that turns guard rejections into the uniform 401 body."""

    async def _http_error_handler(request: Request, exc: Exception) -> Response:
        http_exc = cast("HTTPException", exc)
        if http_exc.status_code == HTTPStatus.UNAUTHORIZED and request.url.path in protected_api_paths:
            error = UnauthenticatedError()
            return _error_response(error.message, error.kind, error.status_code)
        if http_exc.status_code in {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}:
            return Response(status_code=http_exc.status_code, headers=http_exc.headers)
        return JSONResponse({"message": http_exc.detail}, status_code=http_exc.status_code, headers=http_exc.headers)

    return _http_error_handler


def _make_internal_error_handler(
    auth_settings: AuthSettings,
) -> Callable[[Request, Exception], Awaitable[Response]]:
    """Build the 500 handler. Exception details are exposed only in development."""

    async def _internal_error_handler(request: Request, exc: Exception) -> Response:
        logger.error("unhandled error", path=request.url.path, exc_info=exc)
        body = {"message": INTERNAL_ERROR_MESSAGE, "kind": "Internal"}
        if auth_settings.is_development:
            body["detail"] = str(exc)
        return JSONResponse(body, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

    return _internal_error_handler


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def index(_request: Request) -> JSONResponse:
    return JSONResponse({"message": "Welcome to the accounts service!"})


def create_app(
    settings: GatewaySettings | None = None,
    auth_settings: AuthSettings | None = None,  # required in production (via get_app)
    storage_settings: StorageSettings | None = None,
    *,
    asset_store: AssetStore | None = None,
    password_hasher: PasswordHasher | None = None,
) -> Starlette:
    """Build the gateway app.

    The database is opened in the lifespan, so requests must run inside it
    (``with TestClient(app)`` in tests). ``asset_store`` and
    ``password_hasher`` override the configured collaborators.
    """
    if settings is None:  # pragma: no cover
        settings = GatewaySettings()
    if auth_settings is None:  # pragma: no cover
        auth_settings = AuthSettings()  # type: ignore[call-arg]
    if storage_settings is None:
        storage_settings = StorageSettings()

    routes = [
        # Protected JSON routes (uniform 401 JSON when unauthenticated)
        Route("/api/auth/check", protected_api(check_auth), methods=["GET"], name="check_auth"),
        Route("/api/auth/profile", protected_api(update_profile), methods=["PUT"], name="update_profile"),
        # Public routes
        Route("/", public_route(index), methods=["GET"], name="index"),
        Route("/health", public_route(health), methods=["GET"], name="health"),
        Route("/api/auth/register", public_route(register), methods=["POST"], name="register"),
        Route("/api/auth/login", public_route(login), methods=["POST"], name="login"),
        Route("/api/auth/logout", public_route(logout), methods=["POST"], name="logout"),
    ]

    if asset_store is None:
        asset_store = get_asset_store(storage_settings)
    if isinstance(asset_store, LocalAssetStore):
        routes.append(
            Mount(
                storage_settings.public_url_prefix,
                app=StaticFiles(directory=str(asset_store.root_dir), check_dir=False),
                name="media",
            ),
        )

    validate_route_auth_policy(routes)
    protected_api_paths = collect_protected_api_paths(routes)

    db = Database(auth_settings.database_path)
    account_repo = SqliteAccountRepository(db)
    if password_hasher is None:
        password_hasher = get_hasher(auth_settings.password_hasher, rounds=auth_settings.bcrypt_rounds)
    auth_service = AuthService(account_repo, asset_store, password_hasher=password_hasher)
    profile_service = ProfileService(account_repo, asset_store)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        db.connect()
        if isinstance(asset_store, MinioAssetStore):
            await anyio.to_thread.run_sync(asset_store.ensure_bucket)
        try:
            yield
        finally:
            await profile_service.wait_for_cleanup()
            db.close()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            AuthError: _auth_error_handler,
            RepositoryError: _repository_error_handler,
            HTTPException: _make_http_error_handler(protected_api_paths),
            Exception: _make_internal_error_handler(auth_settings),
        },
    )
    app.add_middleware(SlashNormalizationMiddleware)  # type: ignore[arg-type]
    app.add_middleware(
        AuthenticationMiddleware,  # type: ignore[arg-type]
        backend=SessionCookieBackend(account_repo, auth_settings.token_secret),
    )
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Content-Type"],
    )
    app.add_middleware(SecurityHeadersMiddleware)  # type: ignore[arg-type]

    app.state.db = db
    app.state.settings = settings
    app.state.auth_settings = auth_settings
    app.state.asset_store = asset_store
    app.state.auth_service = auth_service
    app.state.profile_service = profile_service

    logger.info("gateway ready", storage_backend=type(asset_store).__name__)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory gateway.server.app:get_app."""
    s = GatewaySettings()
    auth = AuthSettings()  # type: ignore[call-arg]
    setup_logging(log_dir=s.log_dir)
    return create_app(settings=s, auth_settings=auth, storage_settings=StorageSettings())
