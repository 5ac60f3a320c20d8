"""Per-IP fixed-window throttling for the auth forms."""
from __future__ import annotations

import threading
import time

from fastapi import HTTPException, Request


class _FixedWindowCounter:
    def __init__(self) -> None:
        self._windows: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, window_seconds: int) -> int:
        """Count one request for ``key`` and return the total in the current window."""
        now = time.monotonic()
        with self._lock:
            count, ends_at = self._windows.get(key, (0, now + window_seconds))
            if now > ends_at:
                count, ends_at = 0, now + window_seconds
            count += 1
            self._windows[key] = (count, ends_at)
            return count

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()


_counter = _FixedWindowCounter()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client and request.client.host else "unknown"


class RateLimit:
    """
    Route dependency allowing ``limit`` requests per client IP every
    ``window_seconds``; the next one gets a 429.
    """

    def __init__(self, scope: str, limit: int, window_seconds: int) -> None:
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds

    def __call__(self, request: Request) -> None:
        if _counter.hit(f"{self.scope}:{client_ip(request)}", self.window_seconds) > self.limit:
            raise HTTPException(429, "Too many requests. Please try again shortly.")


def reset_limits() -> None:
    """Forget every counter (used between tests)."""
    _counter.clear()
