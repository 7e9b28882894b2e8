"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from src.authgate.api.http.app_data import ApplicationDependencies
from src.authgate.api.http.routers import auth, biometric, health, oauth2
from src.authgate.api.utils.app_startup import configure_logging
from src.authgate.core.errors import (
    AuthError,
    DirectoryUnavailable,
    IdentityProviderUnavailable,
)
from src.authgate.core.services import DbSessionService
from src.authgate.runtime.config.config_data import ConfigData
from src.authgate.runtime.config.config_template import validate_config_env_vars
from src.authgate.runtime.context import get_config
from src.authgate.runtime.init_db import seed_data


# --- Security middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, environment: str):
        super().__init__(app)
        self._environment = environment

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Cache-Control", "no-store")
        # HSTS only in prod
        if self._environment == "production":
            response.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )
        return response


# --- Lifecycle hooks ---
def startup(
    app: FastAPI, config: ConfigData, database_service: DbSessionService | None = None
) -> None:
    logger.info("Starting up application in {} environment", config.app.environment)

    missing = validate_config_env_vars()
    if missing:
        logger.warning("Environment variables not set: {}", sorted(missing))

    # Fails fast with ConfigurationError on a missing or weak key
    deps = ApplicationDependencies.build(config, database_service)
    deps.database_service.create_all()
    seed_data(deps.database_service, config, deps.components.hasher)

    app.state.app_dependencies = deps


def shutdown(app: FastAPI) -> None:
    logger.info("Shutting down application")
    app_dependencies: ApplicationDependencies | None = getattr(
        app.state, "app_dependencies", None
    )
    if app_dependencies is not None:
        app_dependencies.database_service.dispose()


# --- Exception handlers ---
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    logger.bind(error_code=exc.code).info("request.rejected")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())


async def directory_unavailable_handler(
    request: Request, exc: DirectoryUnavailable
) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"code": "DIRECTORY_UNAVAILABLE", "message": str(exc), "details": {}},
    )


async def identity_provider_unavailable_handler(
    request: Request, exc: IdentityProviderUnavailable
) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"code": "IDENTITY_PROVIDER_UNAVAILABLE", "message": str(exc), "details": {}},
    )


# --- Request logging middleware ---
async def log_requests(request: Request, call_next):
    # Correlation / tracing
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    xff = request.headers.get("x-forwarded-for")
    client_ip = (
        xff.split(",")[0].strip()
        if xff
        else request.client.host
        if request.client
        else "unknown"
    )

    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_ip,
        "user_agent": request.headers.get("user-agent", "unknown"),
    }

    start = time.perf_counter()

    # Everything that logs within this block inherits base_ctx
    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            ).info("request.end")

            response.headers.setdefault("X-Request-ID", request_id)
            return response

        except HTTPException as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=exc.status_code,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail, "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )

        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error", "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )


def create_app(
    config: ConfigData | None = None,
    database_service: DbSessionService | None = None,
) -> FastAPI:
    """Build the application for ``config`` (the active configuration by default).

    Args:
        config: Configuration the application runs with
        database_service: Pre-built database service, mainly for tests
    """
    app_config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        startup(app, app_config, database_service)
        try:
            yield
        finally:
            shutdown(app)

    is_production = app_config.app.environment == "production"
    app = FastAPI(
        title="authgate",
        lifespan=lifespan,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
    )

    app.add_middleware(SecurityHeadersMiddleware, environment=app_config.app.environment)
    app.middleware("http")(log_requests)

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(DirectoryUnavailable, directory_unavailable_handler)
    app.add_exception_handler(
        IdentityProviderUnavailable, identity_provider_unavailable_handler
    )

    # --- Router registration ---
    app.include_router(auth.router)
    app.include_router(oauth2.router)
    app.include_router(biometric.router)
    app.include_router(health.router)

    return app


# Initialize logging
configure_logging()

app = create_app()

__all__ = ["app", "create_app", "startup", "shutdown"]
