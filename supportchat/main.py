"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from supportchat.api.v1.chat_router import router as chat_router
from supportchat.core.config import settings
from supportchat.core.database import Base, engine
from supportchat.core.exceptions import (
    AppException,
    app_exception_handler,
    validation_exception_handler,
)
from supportchat.core.middleware import AuthMiddleware
from supportchat.core.rate_limit import limiter, rate_limit_exceeded_handler
from supportchat.core.redis import close_redis, init_redis
from supportchat.schemas.response_schema import ApiResponse, success_response
from supportchat.services.stream_service import wait_for_pending_turns

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info(
        "Starting application",
        app_name=settings.app.name,
        environment=settings.app.env,
        llm_provider=settings.llm.provider,
        model=settings.llm.default_model,
    )
    await init_redis()
    if settings.app.is_development:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    yield
    await wait_for_pending_turns()
    await close_redis()
    await engine.dispose()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app.name,
    description="Customer support chat service with streamed answers and email handoff",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.app.debug,
)

app.state.limiter = limiter

# Exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

# Middleware (registration order: inner→outer, execution order: outer→inner)
app.add_middleware(AuthMiddleware)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.app.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
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


app.include_router(chat_router)
