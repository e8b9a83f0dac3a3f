"""
In-memory rate limiting for the unauthenticated CLI endpoints.

One RateLimiter lives on app.state per application instance.
For multi-process deployments, consider Redis or similar.
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import UTC, datetime, timedelta

from fastapi import HTTPException, Request, status


class RateLimiter:
    """
    Sliding-window rate limiter.

    Tracks request timestamps per key (IP, device code or user) within time windows.
    """

    def __init__(self):
        # key -> timestamps of accepted requests, oldest first
        self._requests: dict[str, list[datetime]] = defaultdict(list)

    def retry_after(self, key: str, max_requests: int, window_minutes: int = 60) -> int | None:
        """
        Record a request for key unless it is over the limit.

        Args:
            key: Identifier to rate limit
            max_requests: Maximum requests allowed in the window
            window_minutes: Time window in minutes (default 60)

        Returns:
            None if the request is allowed, otherwise seconds until a slot frees up
        """
        now = datetime.now(UTC)
        window = timedelta(minutes=window_minutes)

        recent = [ts for ts in self._requests[key] if ts > now - window]
        self._requests[key] = recent

        if len(recent) >= max_requests:
            wait = (recent[0] + window - now).total_seconds()
            return max(1, math.ceil(wait))

        recent.append(now)
        return None

    def cleanup_old_entries(self, max_age_hours: int = 2):
        """
        Clean up rate limit entries older than specified hours.

        Args:
            max_age_hours: Remove entries older than this many hours
        """
        cutoff = datetime.now(UTC) - timedelta(hours=max_age_hours)
        for key in list(self._requests.keys()):
            self._requests[key] = [ts for ts in self._requests[key] if ts > cutoff]
            if not self._requests[key]:
                del self._requests[key]


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(
    request: Request,
    key: str,
    max_requests: int,
    window_minutes: int,
    message: str = "Too many requests. Please slow down.",
) -> None:
    """Raise 429 with Retry-After if key is over its limit on this app's limiter."""
    limiter: RateLimiter = request.app.state.rate_limiter
    wait = limiter.retry_after(key, max_requests, window_minutes)
    if wait is not None:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=message,
            headers={"Retry-After": str(wait)},
        )
