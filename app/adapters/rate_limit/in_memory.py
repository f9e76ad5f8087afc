"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit,
  and a restart forgets every counter.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import logging
import math
import random
import threading
import time
from typing import Callable

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    Admit,
    RateLimitDecision,
    Reject,
    UsageRecord,
)

logger = logging.getLogger(__name__)


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per client.

    Each client's window starts with its first request and lasts
    ``window_seconds``. Once it has elapsed, the next request starts a brand
    new window; usage from the previous window is never carried over.

    Records expired for more than one extra window are removed by ``sweep``,
    either from a scheduled task or, when ``sweep_probability`` is set,
    opportunistically on incoming requests.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
        sweep_probability: float = 0.0,
        rng: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of admitted requests per window.
            window_seconds: Size of the fixed window in seconds.
            clock: Time source function returning UNIX time in seconds.
            sweep_probability: Chance (0..1) of sweeping on each request.
            rng: Random source returning floats in [0, 1).

        Raises:
            ValueError: If any argument is out of range.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if not 0.0 <= sweep_probability <= 1.0:
            raise ValueError("sweep_probability must be between 0 and 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._sweep_probability = sweep_probability
        self._rng = rng
        self._lock = threading.RLock()
        self._records: dict[str, UsageRecord] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get_record(self, identity: str) -> UsageRecord | None:
        """Return a copy of the stored record for ``identity``, if any."""
        with self._lock:
            record = self._records.get(identity)
            if record is None:
                return None
            return UsageRecord(count=record.count, window_reset_at=record.window_reset_at)

    def _start_window(self, identity: str, now: float) -> None:
        """Store a fresh record counting the current request.

        Caller must hold the lock.

        Args:
            identity: Client identity.
            now: Current UNIX time in seconds; the window ends one window later.
        """
        self._records[identity] = UsageRecord(
            count=1,
            window_reset_at=now + self._window_seconds,
        )

    def _build_reject(self, *, now: float, window_reset_at: float) -> Reject:
        """Build the rejection for a client whose window is still live.

        Args:
            now: Current UNIX time in seconds.
            window_reset_at: When the client's window expires.

        Returns:
            Reject: Remaining time rounded up to whole minutes and seconds.
        """
        remaining = max(0.0, window_reset_at - now)
        return Reject(
            minutes_remaining=int(math.ceil(remaining / 60)),
            retry_after_seconds=int(math.ceil(remaining)),
        )

    def check_and_record(self, identity: str, now: float | None = None) -> RateLimitDecision:
        """Admit and count the request, or reject it without touching state.

        Args:
            identity: Client identity; all "unknown" clients share one bucket.
            now: Current UNIX time in seconds. Defaults to the limiter clock.

        Returns:
            Admit, or Reject carrying the minutes left in the client's window.

        Raises:
            ValueError: If identity is empty.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        if now is None:
            now = self._clock()

        if self._sweep_probability and self._rng() < self._sweep_probability:
            self.sweep(now)

        with self._lock:
            record = self._records.get(identity)

            if record is None or now > record.window_reset_at:
                self._start_window(identity, now)
                return Admit()

            if record.count < self._limit:
                record.count += 1
                return Admit()

            return self._build_reject(now=now, window_reset_at=record.window_reset_at)

    def sweep(self, now: float | None = None) -> int:
        """Delete records whose window ended more than one window ago.

        Args:
            now: Current UNIX time in seconds. Defaults to the limiter clock.

        Returns:
            Number of records removed.
        """
        if now is None:
            now = self._clock()

        with self._lock:
            stale = [
                identity
                for identity, record in self._records.items()
                if record.window_reset_at + self._window_seconds < now
            ]
            for identity in stale:
                del self._records[identity]
            remaining = len(self._records)

        if stale:
            logger.debug(
                "rate_limit.sweep",
                extra={"removed": len(stale), "remaining": remaining},
            )
        return len(stale)
