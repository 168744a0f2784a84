"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from chat_bridge.api.v1.chat_router import router as chat_router
from chat_bridge.core.config import settings
from chat_bridge.core.exceptions import (
    AppException,
    app_exception_handler,
    rate_limit_exceeded_handler,
    validation_exception_handler,
)
from chat_bridge.core.redis import close_redis, init_redis
from chat_bridge.schemas.response_schema import ApiResponse, success_response
from chat_bridge.tasks.scheduler import shutdown_scheduler, start_scheduler

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info(
        "Starting application",
        app_name=settings.app.name,
        environment=settings.app.env,
        store_backend=settings.app.store_backend,
        engine_url=settings.engine.base_url,
    )
    if settings.app.store_backend == "redis":
        await init_redis()
    scheduler = start_scheduler()
    yield
    shutdown_scheduler(scheduler)
    await close_redis()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app.name,
    description="Chat widget bridge to a voice-first conversation engine",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.app.debug,
)

# Coarse per-IP guard on every route; per-session limits live in the router.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit.global_limit],
)
app.state.limiter = limiter

# Exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

# Middleware (registration order: inner→outer, execution order: outer→inner)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app.allowed_origins_list,
    allow_credentials="*" not in settings.app.allowed_origins_list,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.get("/health", response_model=ApiResponse[dict])
async def health_check() -> dict:
    """Health check endpoint."""
    return success_response({"status": "healthy"})


@app.get("/", response_model=ApiResponse[dict])
async def root() -> dict:
    """Root endpoint."""
    return success_response(
        {
            "app": settings.app.name,
            "version": "0.1.0",
            "docs": "/docs",
        }
    )


# Register routers
app.include_router(chat_router)
