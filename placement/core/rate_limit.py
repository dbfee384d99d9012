"""
Rate Limiter - fixed window per caller.

Callers are keyed by user id when authenticated, client IP otherwise.
Windows live in a bounded LRU. Expired windows at the least recently used
end are dropped on every hit; an expired window behind a live one stays
until the table is full. Once max_keys is exceeded all expired windows are
swept, and only then is the least recently used live key evicted, so memory
stays flat no matter how many distinct callers appear.
"""

import math
import threading
import time
from collections import OrderedDict
from typing import Optional, Tuple

from fastapi import Depends, Request

from placement.core.auth import get_optional_user
from placement.core.config import get_settings
from placement.core.errors import RateLimitError


class RateLimiter:
    def __init__(self, max_requests: int = 100, window_seconds: float = 60, max_keys: int = 10000):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        # key -> (count, reset_at)
        self._windows: "OrderedDict[str, Tuple[int, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def __contains__(self, key: str) -> bool:
        return key in self._windows

    def hit(self, key: str, now: Optional[float] = None) -> int:
        """
        Count one request for key. Returns the requests left in the window.

        Raises RateLimitError (with whole seconds until reset) when the
        window is already full.
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window[1]:
                count, reset_at = 1, now + self.window_seconds
            else:
                count, reset_at = window
                if count >= self.max_requests:
                    self._windows.move_to_end(key)
                    raise RateLimitError(max(1, math.ceil(reset_at - now)))
                count += 1

            self._windows[key] = (count, reset_at)
            self._windows.move_to_end(key)
            self._evict(now)
            return self.max_requests - count

    def _evict(self, now: float) -> None:
        # expired windows at the front of the recency order
        while self._windows:
            _, (_, reset_at) = next(iter(self._windows.items()))
            if now <= reset_at:
                break
            self._windows.popitem(last=False)

        if len(self._windows) <= self.max_keys:
            return
        # full: sweep every expired window before evicting live ones
        for key in [k for k, (_, reset_at) in self._windows.items() if now > reset_at]:
            del self._windows[key]
        while len(self._windows) > self.max_keys:
            self._windows.popitem(last=False)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the process-wide limiter (singleton pattern)"""
    global _rate_limiter
    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = RateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
            max_keys=settings.rate_limit_max_keys,
        )
    return _rate_limiter


async def rate_limit(
    request: Request,
    user: Optional[dict] = Depends(get_optional_user),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    """Router dependency - one hit per request."""
    if user is not None:
        key = f"user:{user['uid']}"
    else:
        key = f"ip:{request.client.host if request.client else 'unknown'}"
    limiter.hit(key)
