"""
Rate limiting for PurVita Backend
Uses in-memory storage with sliding window algorithm
"""
import logging
import time
from collections import defaultdict
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    Limits are per process. With several instances behind a load balancer
    each one enforces its own window.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        # {identifier: [(timestamp, count), ...]}
        self._requests: Dict[str, list] = defaultdict(list)
        self._clock = clock
        # Clean up old entries periodically
        self._last_cleanup = clock()
        self._cleanup_interval = 60  # seconds

    def _cleanup_old_entries(self, window_seconds: int = 60):
        """Remove entries older than the largest window we care about"""
        now = self._clock()

        # Only cleanup periodically to avoid overhead
        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds * 2

        for identifier in list(self._requests.keys()):
            self._requests[identifier] = [
                (ts, count) for ts, count in self._requests[identifier]
                if ts > cutoff
            ]
            if not self._requests[identifier]:
                del self._requests[identifier]

        self._last_cleanup = now

    def is_allowed(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int = 60
    ) -> Tuple[bool, int, int]:
        """
        Check if a request is allowed under the rate limit.

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        self._cleanup_old_entries(window_seconds)

        now = self._clock()
        window_start = now - window_seconds

        requests_in_window = [
            (ts, count) for ts, count in self._requests[identifier]
            if ts > window_start
        ]

        total_requests = sum(count for _, count in requests_in_window)

        if total_requests >= max_requests:
            # Calculate when the oldest request in window will expire
            if requests_in_window:
                oldest_timestamp = min(ts for ts, _ in requests_in_window)
                retry_after = int(oldest_timestamp + window_seconds - now) + 1
            else:
                retry_after = 1

            return False, 0, retry_after

        self._requests[identifier].append((now, 1))

        remaining = max_requests - total_requests - 1
        return True, remaining, 0

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


def enforce_rate_limit(identifier: str, prefix: str, max_requests: int, window_seconds: int = 60) -> int:
    """
    Apply a named rate limit to an identifier (usually the user id).

    Returns:
        Remaining requests in the current window

    Raises:
        HTTPException 429 with Retry-After headers when the limit is exceeded
    """
    key = f"{prefix}:{identifier}"
    is_allowed, remaining, retry_after = rate_limiter.is_allowed(
        identifier=key,
        max_requests=max_requests,
        window_seconds=window_seconds
    )

    if not is_allowed:
        logger.warning(f"Rate limit exceeded for {key} ({max_requests}/{window_seconds}s)")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many requests. Try again in {retry_after} seconds.",
            headers={
                "X-RateLimit-Limit": str(max_requests),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(retry_after),
                "Retry-After": str(retry_after),
            }
        )

    return remaining
