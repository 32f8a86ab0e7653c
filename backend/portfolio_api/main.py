from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_api.api.api_v1.api import api_router
from portfolio_api.api.responses import envelope
from portfolio_api.core.config import Settings, settings as default_settings
from portfolio_api.core.exceptions import (
    ApiError,
    MalformedRequestBody,
    PayloadTooLarge,
    RateLimited,
    UpstreamUnavailable,
)
from portfolio_api.core.logger import init_logger
from portfolio_api.core.ratelimit import api_rate_limiter, contact_rate_limiter
from portfolio_api.core.security import SECURITY_HEADERS, BodySizeLimitMiddleware, get_client_ip
from portfolio_api.db.session import Database
from portfolio_api.services.notifications import ContactNotifier

app_logger = init_logger("portfolio-api")

ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization, X-Requested-With"


def _error_response(exc: ApiError, *, show_detail: bool) -> JSONResponse:
    errors = getattr(exc, "errors", None)
    body = envelope(False, message=exc.message, errors=errors)
    if show_detail and isinstance(exc, UpstreamUnavailable) and exc.detail:
        body["error"] = exc.detail

    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


def _validation_field(loc: tuple) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def create_app(app_settings: Optional[Settings] = None, *, notifier: Optional[ContactNotifier] = None) -> FastAPI:
    app_settings = app_settings or default_settings
    show_detail = not app_settings.is_production

    def client_ip(request: Request) -> str:
        return get_client_ip(request, trust_proxy=app_settings.TRUST_PROXY)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not app.state.notifier.enabled:
            app_logger.info("Email credentials not configured, contact notifications are disabled")

        database: Database = app.state.database
        if database.url:
            try:
                database.connect()
            except UpstreamUnavailable as e:
                # the next request retries the connection
                app_logger.error(f"Initial database connection failed: {e.detail}")
        elif app_settings.SERVERLESS:
            app_logger.warning("DATABASE_URL is not defined, database requests will fail")
        else:
            raise RuntimeError("DATABASE_URL is not defined")

        yield
        database.dispose()

    app = FastAPI(title=app_settings.PROJECT_NAME, version=app_settings.VERSION, lifespan=lifespan)

    app.state.settings = app_settings
    app.state.database = Database(app_settings.DATABASE_URL, connect_timeout=app_settings.DB_CONNECT_TIMEOUT)
    app.state.api_limiter = api_rate_limiter(app_settings.RATE_LIMIT_MAX, app_settings.RATE_LIMIT_WINDOW_SECONDS)
    app.state.contact_limiter = contact_rate_limiter(
        app_settings.CONTACT_RATE_LIMIT_MAX, app_settings.CONTACT_RATE_LIMIT_WINDOW_SECONDS
    )
    app.state.notifier = notifier or ContactNotifier.from_settings(app_settings)

    # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # #
    # Error handlers
    # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # #

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            app_logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({getattr(exc, 'detail', None)})")
        return _error_response(exc, show_detail=show_detail)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if any(err.get("type") == "json_invalid" for err in errors):
            return _error_response(MalformedRequestBody(), show_detail=show_detail)
        return JSONResponse(
            status_code=400,
            content=envelope(
                False,
                message="Validation failed",
                errors=[{"field": _validation_field(err.get("loc", ())), "message": err.get("msg", "")} for err in errors],
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = f"Route not found: {request.url.path}"
        else:
            message = str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content=envelope(False, message=message))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        app_logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        body = envelope(False, message="Internal Server Error")
        if show_detail:
            body["error"] = str(exc)
        return JSONResponse(status_code=500, content=body)

    # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # #
    # Middlewares, the last one registered runs first
    # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # #

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=app_settings.MAX_BODY_BYTES)

    @app.middleware("http")
    async def request_guard(request: Request, call_next):
        """Rejects bodies declared too large and applies the general /api rate limit."""
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > app_settings.MAX_BODY_BYTES:
            app_logger.warning(f"Rejected {content_length} byte body on {request.url.path}")
            return _error_response(PayloadTooLarge(), show_detail=show_detail)

        if request.url.path.startswith(app_settings.API_V1_STR) and request.method != "OPTIONS":
            try:
                app.state.api_limiter.hit(client_ip(request))
            except RateLimited as exc:
                return _error_response(exc, show_detail=show_detail)

        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        app_logger.info(f"{request.method} {request.url.path} from {client_ip(request)}")
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        app_logger.debug(f"{request.method} {request.url.path} - {response.status_code} ({elapsed_ms:.1f}ms)")
        return response

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        return response

    @app.middleware("http")
    async def cors_middleware(request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        origin = request.headers.get("origin")
        if not origin:
            response.headers["Access-Control-Allow-Origin"] = "*"
        elif "*" in app_settings.CORS_ORIGINS or origin in app_settings.CORS_ORIGINS:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"

        response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = (
            request.headers.get("Access-Control-Request-Headers") or ALLOWED_HEADERS
        )
        response.headers["Access-Control-Allow-Credentials"] = "true"
        return response

    # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # #
    # Routes
    # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # #

    @app.get("/")
    def root() -> dict[str, Any]:
        return envelope(
            True,
            message=app_settings.PROJECT_NAME,
            version=app_settings.VERSION,
            endpoints={
                "health": f"{app_settings.API_V1_STR}/health",
                "contact": f"{app_settings.API_V1_STR}/contact",
            },
        )

    @app.get(f"{app_settings.API_V1_STR}/health")
    def health(request: Request) -> dict[str, Any]:
        database: Database = request.app.state.database
        return envelope(
            True,
            message="Portfolio API is running",
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            environment=app_settings.ENVIRONMENT,
            database="connected" if database.url and database.ping() else "disconnected",
        )

    app.include_router(api_router, prefix=app_settings.API_V1_STR)

    return app


app = create_app()


def serve() -> None:
    uvicorn.run(
        "portfolio_api.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=not default_settings.is_production and not default_settings.SERVERLESS,
    )


if __name__ == "__main__":
    serve()
