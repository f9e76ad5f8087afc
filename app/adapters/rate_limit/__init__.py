"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory limiter and later migrate to Redis or another shared store
without changing the API layer.
"""

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    Admit,
    RateLimitDecision,
    Reject,
    UsageRecord,
)
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.rate_limit.sweeper import PeriodicSweeper

__all__ = [
    "AbstractRateLimiter",
    "Admit",
    "InMemoryFixedWindowRateLimiter",
    "PeriodicSweeper",
    "RateLimitDecision",
    "Reject",
    "UsageRecord",
]
