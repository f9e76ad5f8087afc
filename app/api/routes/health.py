from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check, exempt from rate limiting.

    Returns:
        dict: ``status`` plus the number of clients currently tracked by the
            rate limiter (0 before the first chat request).
    """

    limiter = getattr(request.app.state, "rate_limiter", None)
    tracked = len(limiter) if limiter is not None and hasattr(limiter, "__len__") else 0
    return {"status": "ok", "tracked_clients": tracked}
