"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
- Explicit ownership: the limiter lives on ``app.state`` and is created in
  the application lifespan, so tests can inject their own instance.

Rate limiting strategy:
- Fixed window per client identity (forwarded address, peer address, or
  the shared "unknown" bucket).
- Rejected requests short-circuit with HTTP 429 before any upstream call.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Request

from app.adapters.rate_limit.base import AbstractRateLimiter, Reject
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.client_identity import hash_client_identity, resolve_client_identity
from app.core.config import AppSettings, settings
from app.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)


def build_rate_limiter(app_settings: AppSettings | None = None) -> InMemoryFixedWindowRateLimiter:
    """Create the process-wide limiter from configuration.

    Args:
        app_settings: Optional settings; defaults to global settings if omitted.

    Returns:
        InMemoryFixedWindowRateLimiter: Fresh limiter with an empty store.
    """

    cfg = app_settings or settings.app
    return InMemoryFixedWindowRateLimiter(
        limit=cfg.rate_limit_requests,
        window_seconds=cfg.rate_limit_window_seconds,
        sweep_probability=cfg.rate_limit_sweep_probability,
    )


async def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application.

    Created lazily when the app is used without its lifespan (e.g., a
    TestClient that is not entered as a context manager). Runs on the event
    loop so concurrent first requests share one limiter.
    """

    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        limiter = build_rate_limiter()
        request.app.state.rate_limiter = limiter
    return limiter


def build_rate_limit_message(minutes_remaining: int) -> str:
    """Build the client-facing 429 message.

    Args:
        minutes_remaining: Whole minutes until the client's window resets.

    Returns:
        str: Message shown by the chat widget.
    """
    return f"Request rate too high, please retry in {minutes_remaining} minutes."


async def enforce_rate_limit(
    request: Request,
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
) -> None:
    """FastAPI dependency enforcing per-client rate limits.

    Stores the resolved identity on ``request.state.client_identity`` so the
    route can reuse it. When the client has exhausted its window, raises
    RateLimitAppError (rendered as HTTP 429) and nothing else happens.

    Args:
        request: FastAPI request.
        limiter: Limiter owned by the application.

    Raises:
        RateLimitAppError: When the rate limit is exceeded.
    """

    identity = resolve_client_identity(
        request,
        trust_forwarded_for=settings.app.trust_forwarded_for,
    )
    request.state.client_identity = identity

    if not settings.app.rate_limit_enabled:
        return

    decision = limiter.check_and_record(identity)
    identity_hash = hash_client_identity(identity)

    if not isinstance(decision, Reject):
        logger.info(
            "rate_limit.allowed",
            extra={
                "client_hash": identity_hash,
                "limit": limiter.limit,
                "window_s": limiter.window_seconds,
            },
        )
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "client_hash": identity_hash,
            "limit": limiter.limit,
            "window_s": limiter.window_seconds,
            "minutes_remaining": decision.minutes_remaining,
            "retry_after_s": decision.retry_after_seconds,
        },
    )

    raise RateLimitAppError(
        code="rate_limited",
        message=build_rate_limit_message(decision.minutes_remaining),
        details={
            "minutes_remaining": decision.minutes_remaining,
            "retry_after": decision.retry_after_seconds,
        },
    )
