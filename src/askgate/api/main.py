from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional
from dotenv import load_dotenv
import logging
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from ..config import Settings
from ..errors import (
    InvalidPayload,
    LoginRequired,
    StorageError,
    UpstreamCompletionError,
    UpstreamIdentityError,
)
from ..observability.metrics import metrics_middleware_factory, record_upstream_failure
from .routers.auth import router as auth_router
from .routers.messages import router as messages_router

load_dotenv()  # OPENAI_API_KEY, GITHUB_CLIENT_ID, ... from .env if present

logger = logging.getLogger(__name__)


def _error_response(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


def _register_error_handlers(app: FastAPI) -> None:
    # AuthMissing has no handler on purpose: it surfaces as the framework's 500.

    @app.exception_handler(LoginRequired)
    async def _login_required(request: Request, exc: LoginRequired) -> Response:
        logger.info("Redirecting anonymous %s %s to login", request.method, request.url.path)
        return RedirectResponse(request.app.state.settings.login_path, status_code=302)

    @app.exception_handler(InvalidPayload)
    async def _invalid_payload(request: Request, exc: InvalidPayload) -> Response:
        return _error_response(400, str(exc))

    @app.exception_handler(UpstreamIdentityError)
    async def _identity_failed(request: Request, exc: UpstreamIdentityError) -> Response:
        logger.warning("Identity provider failure on %s: %s", request.url.path, exc)
        record_upstream_failure("identity")
        return _error_response(502, "Identity provider unavailable")

    @app.exception_handler(UpstreamCompletionError)
    async def _completion_failed(request: Request, exc: UpstreamCompletionError) -> Response:
        logger.warning("Completion failure on %s: %s", request.url.path, exc)
        record_upstream_failure("completion")
        return _error_response(502, "Completion service unavailable")

    @app.exception_handler(StorageError)
    async def _storage_failed(request: Request, exc: StorageError) -> Response:
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        record_upstream_failure("storage")
        return _error_response(503, "Storage unavailable")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(title="askgate API", version="0.1.0")
    app.state.settings = settings

    app.middleware("http")(metrics_middleware_factory())

    app.include_router(auth_router)
    app.include_router(messages_router)

    # Frontend dev server sends the session cookie cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "components": {
                "api": "ok",
                "store": settings.store_impl,
            },
        }

    @app.get("/metrics")
    def metrics() -> Response:
        data = generate_latest(REGISTRY)
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
