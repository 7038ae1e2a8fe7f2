from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from foliovault.app.api.binance import router as binance_router
from foliovault.app.api.users import router as users_router
from foliovault.app.core.config import settings
from foliovault.app.core.http_client import init_http_client
from foliovault.app.core.logging import get_logger, setup_logging
from foliovault.app.db import models  # noqa: F401 - import to register models
from foliovault.app.db.async_session import close_async_engine
from foliovault.app.db.init_db import create_all_tables, verify_connection
from foliovault.app.exceptions import (
    ExchangeClientError,
    FolioVaultException,
    RateLimitExceededError,
    ValidationFailedError,
)
from foliovault.app.middleware.rate_limit import (
    RateLimiter,
    RateLimitSweeper,
    get_rate_limiter,
    set_rate_limiter,
)
from foliovault.app.middleware.request_id import RequestIdMiddleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[dict, None]:
        """Application lifespan context manager.

        Initializes the shared HTTP client, the database and the rate
        limiter with its sweeper on startup, and tears them down on
        shutdown.
        """
        async with init_http_client() as http_client:
            if not await verify_connection():
                logger.error("Database connection failed!")
                raise RuntimeError("Cannot connect to database")

            await create_all_tables()

            limiter = RateLimiter()
            set_rate_limiter(limiter)
            sweeper = RateLimitSweeper(
                limiter.backend, interval_seconds=settings.rate_limit_sweep_interval_seconds
            )
            await sweeper.start()

            logger.info(
                "Application startup complete",
                extra={"debug_mode": settings.debug, "binance_base_url": settings.binance_base_url},
            )

            try:
                yield {"http_client": http_client}
            finally:
                await sweeper.stop()
                set_rate_limiter(None)
                await close_async_engine()
                logger.info("Application shutdown complete")

    app = FastAPI(
        title="FolioVault Exchange Gateway",
        description="Rate-limited Binance proxy with server-side request signing",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
        max_age=600,
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(users_router)
    app.include_router(binance_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check with database status."""
        health_status: dict[str, Any] = {"status": "ok", "components": {}}

        if await verify_connection():
            health_status["components"]["database"] = {"status": "ok"}
        else:
            health_status["status"] = "degraded"
            health_status["components"]["database"] = {"status": "error"}

        health_status["components"]["rate_limiter"] = {
            "status": "ok",
            "tracked_keys": len(get_rate_limiter().backend),
        }
        return health_status

    @app.exception_handler(RateLimitExceededError)
    async def rate_limit_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
        """Handle RateLimitExceededError and return HTTP 429 with Retry-After."""
        return JSONResponse(
            status_code=429,
            content={
                "error": exc.error_code,
                "message": exc.message,
                "retry_after": exc.retry_after_seconds,
            },
            headers={
                "Retry-After": str(exc.retry_after_seconds),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(exc.reset_at),
            },
        )

    @app.exception_handler(ValidationFailedError)
    async def validation_handler(request: Request, exc: ValidationFailedError) -> JSONResponse:
        content: dict[str, Any] = {"error": exc.error_code, "message": exc.message}
        if exc.details:
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed bodies and query params get the same 400 shape as other validation errors."""
        messages = []
        details = []
        for error in exc.errors():
            message = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
            field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query"))
            messages.append(message)
            details.append(f"{field}: {message}" if field else message)
        return JSONResponse(
            status_code=400,
            content={
                "error": ValidationFailedError.error_code,
                "message": messages[0] if messages else "Validation failed",
                "details": details,
            },
        )

    @app.exception_handler(ExchangeClientError)
    async def exchange_error_handler(request: Request, exc: ExchangeClientError) -> JSONResponse:
        """Binance errors carry the exchange code but never credentials."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error_code, "message": exc.message, "code": exc.code},
        )

    @app.exception_handler(FolioVaultException)
    async def app_error_handler(request: Request, exc: FolioVaultException) -> JSONResponse:
        """Client errors keep their message; server errors are made generic."""
        request_id = getattr(request.state, "request_id", "unknown")
        if exc.status_code >= 500:
            logger.error(
                f"{type(exc).__name__} [request_id={request_id}]: {exc.message}",
                extra={"request_id": request_id},
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.error_code,
                    "message": "Internal server error",
                    "request_id": request_id,
                },
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error_code, "message": exc.message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Never returns a traceback or exception text to the client; full
        details are logged server-side.
        """
        request_id = getattr(request.state, "request_id", "unknown")
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
            },
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "Internal server error",
                "request_id": request_id,
            },
        )

    return app


# Create the application instance
app = create_app()
