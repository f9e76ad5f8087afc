from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
owns the lifecycle of process-wide state: the rate limiter store and its
background sweeper are created at startup and torn down at shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.sweeper import PeriodicSweeper
from app.api.routes import chat_router, health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.rate_limit import build_rate_limiter

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "Chat", "description": "Chat relay to the upstream completion API."},
    {"name": "Health", "description": "Liveness checks."},
]


def _parse_origins(raw: str) -> list[str]:
    """Split a comma-separated origins setting.

    Args:
        raw: Value of ``APP_CORS_ALLOW_ORIGINS`` (e.g., "*" or
            "https://a.example,https://b.example").

    Returns:
        list[str]: Non-empty, stripped origins.
    """
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(rate_limiter: AbstractRateLimiter | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Optional limiter to use instead of one built from
            settings (tests inject limiters with a controlled clock).

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "rate_limiter", None) is None:
            app.state.rate_limiter = build_rate_limiter()

        sweeper: PeriodicSweeper | None = None
        interval = settings.app.rate_limit_sweep_interval_seconds
        if settings.app.rate_limit_enabled and interval > 0:
            sweeper = PeriodicSweeper(app.state.rate_limiter, interval_seconds=interval)
            sweeper.start()

        logger.info(
            "app.startup",
            extra={
                "env": settings.app_env,
                "model": settings.llm.model,
                "rate_limit_enabled": settings.app.rate_limit_enabled,
                "rate_limit_requests": settings.app.rate_limit_requests,
                "window_s": settings.app.rate_limit_window_seconds,
            },
        )
        try:
            yield
        finally:
            if sweeper is not None:
                await sweeper.stop()
            logger.info("app.shutdown")

    app = FastAPI(
        title="Chat Relay API",
        description=(
            "Relays chat messages from the website widget to an OpenAI-compatible "
            "completion API, with a fixed system prompt, per-client rate limiting "
            "and optional conversation logging."
        ),
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.rate_limiter = rate_limiter

    # Middleware (the last one added runs first, so CORS answers preflights)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(settings.app.cors_allow_origins),
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[settings.log.request_id_header, "Retry-After"],
    )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(chat_router, prefix="/api")
    app.include_router(health_router)

    return app
