from __future__ import annotations

import math
import time
from typing import Callable

from portfolio_api.core.exceptions import RateLimited
from portfolio_api.core.logger import init_logger


class RateLimit:
    """
    **RateLimit**
        Sliding window for a single client: remembers the timestamps of the
        requests seen inside the last ``duration`` seconds.
    """

    def __init__(self, max_requests: int, duration: int):
        self.max_requests = max_requests
        self.duration_seconds = duration
        self.requests: list[float] = []

    def is_limit_exceeded(self, now: float) -> bool:
        # remove old requests from the list
        self.requests = [r for r in self.requests if r > now - self.duration_seconds]
        if len(self.requests) >= self.max_requests:
            return True
        self.requests.append(now)
        return False

    def is_idle(self, now: float) -> bool:
        return not self.requests or self.requests[-1] <= now - self.duration_seconds

    def retry_after(self, now: float) -> int:
        if not self.requests:
            return 0
        return max(1, math.ceil(self.requests[0] + self.duration_seconds - now))


class RateLimiter:
    """
    Process-wide limiter keyed by client address.

    Counters live in memory only: restarting the process resets them and they
    are not shared between instances.
    """

    def __init__(
        self,
        name: str,
        *,
        max_requests: int,
        window_seconds: int,
        message: str,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._clients: dict[str, RateLimit] = {}
        self._last_sweep: float | None = None
        self._logger = init_logger("rate-limit")

    def hit(self, client: str) -> None:
        """Count one request for ``client``; raises RateLimited once the window is full."""
        now = self._clock()
        self._sweep(now)
        window = self._clients.get(client)
        if window is None:
            window = self._clients[client] = RateLimit(self.max_requests, self.window_seconds)

        if window.is_limit_exceeded(now):
            retry_after = window.retry_after(now)
            self._logger.warning(f"{self.name} limit exceeded for {client}, retry in {retry_after}s")
            raise RateLimited(self.message, retry_after=retry_after)

    def _sweep(self, now: float) -> None:
        """Forget clients whose window has emptied, at most once per window."""
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for client in [c for c, w in self._clients.items() if w.is_idle(now)]:
            del self._clients[client]

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client: str) -> bool:
        return client in self._clients

    def reset(self) -> None:
        self._clients.clear()
        self._last_sweep = None


def _horizon(seconds: int) -> str:
    if seconds == 60 * 60:
        return "an hour"
    if seconds % 3600 == 0:
        return f"{seconds // 3600} hours"
    if seconds % 60 == 0:
        return f"{seconds // 60} minutes"
    return f"{seconds} seconds"


def api_rate_limiter(max_requests: int, window_seconds: int) -> RateLimiter:
    return RateLimiter(
        "api",
        max_requests=max_requests,
        window_seconds=window_seconds,
        message=f"Too many requests from this IP, please try again after {_horizon(window_seconds)}.",
    )


def contact_rate_limiter(max_requests: int, window_seconds: int) -> RateLimiter:
    return RateLimiter(
        "contact",
        max_requests=max_requests,
        window_seconds=window_seconds,
        message=(
            "Too many contact form submissions from this IP, "
            f"please try again after {_horizon(window_seconds)}."
        ),
    )
