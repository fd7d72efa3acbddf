"""
In-memory sliding-window rate limiting per client address.
"""

import math
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional

import structlog
from fastapi import Request

from ..config import Settings
from ..exceptions import RateLimitError


logger = structlog.get_logger("estate_assistant.rate_limit")


class SlidingWindowRateLimiter:
    """
    Keeps the timestamps of recent requests per key and rejects a request once
    `max_requests` fall inside the last `window_seconds`.

    State lives in this process only.
    """

    def __init__(self, name: str, window_seconds: int, max_requests: int, message: str):
        self.name = name
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.message = message
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = float("-inf")

    def check(self, key: str, now: Optional[float] = None) -> None:
        """Record a request for `key` or raise RateLimitError when over the limit."""
        now = time.monotonic() if now is None else now
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)
        hits = self._hits[key]
        while hits and hits[0] <= now - self.window_seconds:
            hits.popleft()

        if len(hits) >= self.max_requests:
            retry_after = max(1, math.ceil(hits[0] + self.window_seconds - now))
            logger.warning("Rate limit exceeded", limiter=self.name, client=key, retry_after=retry_after)
            raise RateLimitError(self.message, retry_after)

        hits.append(now)

    def _sweep(self, now: float) -> None:
        """Forget clients with no requests left inside the window; runs at most once per window."""
        self._last_sweep = now
        cutoff = now - self.window_seconds
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[key]

    @property
    def tracked_clients(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()
        self._last_sweep = float("-inf")


def build_rate_limiters(settings: Settings) -> Dict[str, SlidingWindowRateLimiter]:
    return {
        "general": SlidingWindowRateLimiter(
            "general",
            settings.RATE_LIMIT_WINDOW_SECONDS,
            settings.RATE_LIMIT_MAX_REQUESTS,
            "Too many requests from this IP, please try again later.",
        ),
        "chat": SlidingWindowRateLimiter(
            "chat",
            settings.RATE_LIMIT_CHAT_WINDOW_SECONDS,
            settings.RATE_LIMIT_CHAT_MAX_REQUESTS,
            "Too many chat requests, please slow down.",
        ),
        "voice": SlidingWindowRateLimiter(
            "voice",
            settings.RATE_LIMIT_VOICE_WINDOW_SECONDS,
            settings.RATE_LIMIT_VOICE_MAX_REQUESTS,
            "Voice synthesis rate limit exceeded, please wait before requesting more audio.",
        ),
    }


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(name: str) -> Callable[[Request], None]:
    """Route dependency that applies the named limiter to the calling client."""

    def dependency(request: Request) -> None:
        request.app.state.rate_limiters[name].check(client_address(request))

    return dependency
