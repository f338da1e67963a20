# backend/fintrack/services/rate_limiter.py
"""
Fixed-window rate limiter gate.

Counts calls per identifier (typically a client IP) in a fixed window that
starts at the identifier's first call. Built on the `limits` package, the
same backend slowapi uses for the route-level limits.

    check("1.2.3.4")  → success, remaining 9
    ...
    check("1.2.3.4")  → success, remaining 0     (10th call)
    check("1.2.3.4")  → failure, remaining 0     (11th call)
    ... window elapses ...
    check("1.2.3.4")  → success, remaining 9

Usage:
    gate = RateLimiterGate()
    result = gate.check(client_ip, max_requests=30, window_ms=60_000)
    if not result.success:
        ...  # respond 429
"""

import logging
from dataclasses import dataclass

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from fintrack.services.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_MS = 60_000


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    remaining: int


class RateLimiterGate:
    """
    In-process fixed-window limiter.

    State lives in a limits MemoryStorage owned by this gate, so separate
    gates never share counters.
    """

    def __init__(self) -> None:
        self._storage = MemoryStorage()
        self._limiter = FixedWindowRateLimiter(self._storage)

    def check(
            self,
            identifier: str,
            max_requests: int = DEFAULT_MAX_REQUESTS,
            window_ms: int = DEFAULT_WINDOW_MS,
    ) -> RateLimitResult:
        """
        Count one call for identifier.

        Args:
            identifier: Key the window is tracked under
            max_requests: Calls allowed per window
            window_ms: Window length in milliseconds, a multiple of 1000

        Returns:
            RateLimitResult with the calls left in the current window
        """
        if max_requests < 1:
            raise ValidationError("max_requests must be at least 1", field="max_requests")
        if window_ms < 1000 or window_ms % 1000:
            raise ValidationError("window_ms must be a whole number of seconds", field="window_ms")

        item = RateLimitItemPerSecond(max_requests, window_ms // 1000)
        if not self._limiter.hit(item, identifier):
            logger.warning(f"Rate limit exceeded for {identifier}")
            return RateLimitResult(success=False, remaining=0)

        stats = self._limiter.get_window_stats(item, identifier)
        return RateLimitResult(success=True, remaining=max(0, stats.remaining))

    def reset(self) -> None:
        self._storage.reset()
