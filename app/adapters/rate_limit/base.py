"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Admit:
    """The request may proceed."""

    allowed = True


@dataclass(frozen=True)
class Reject:
    """The request must be throttled.

    Attributes:
        minutes_remaining: Whole minutes (rounded up) until the client's
            current window resets.
        retry_after_seconds: Same wait expressed in whole seconds, for the
            ``Retry-After`` header.
    """

    minutes_remaining: int
    retry_after_seconds: int

    allowed = False


RateLimitDecision = Union[Admit, Reject]


@dataclass
class UsageRecord:
    """Per-client usage within the current window.

    Attributes:
        count: Requests counted in the current window (1..limit while live).
        window_reset_at: UNIX epoch seconds when the current window expires.
    """

    count: int
    window_reset_at: float


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @property
    @abstractmethod
    def limit(self) -> int:
        """Maximum admitted requests per client per window."""
        raise NotImplementedError

    @property
    @abstractmethod
    def window_seconds(self) -> float:
        """Window length in seconds."""
        raise NotImplementedError

    @abstractmethod
    def check_and_record(self, identity: str, now: float | None = None) -> RateLimitDecision:
        """Decide whether a request from ``identity`` is admitted.

        Admitted requests are counted; rejected requests leave the stored
        state untouched.

        Args:
            identity: Client identity (e.g., IP address or "unknown").
            now: Current UNIX time in seconds. Defaults to the limiter clock.

        Returns:
            Admit or Reject.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: float | None = None) -> int:
        """Remove records that have been expired for more than one window.

        Args:
            now: Current UNIX time in seconds. Defaults to the limiter clock.

        Returns:
            Number of records removed.
        """
        raise NotImplementedError
