"""Per-client fixed-window rate limiter."""

from __future__ import annotations

import math
import time

from collections.abc import Callable
from dataclasses import dataclass, field

from diffsage.application.dto import RateLimitDecision
from diffsage.shared.constants import (
    DEFAULT_RATE_LIMIT_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
)


@dataclass
class _Window:
    count: int
    resets_at: float


@dataclass(frozen=True)
class RateLimiterStats:
    total_clients: int
    active_clients: int


@dataclass
class FixedWindowRateLimiter:
    """Allows ``max_requests`` per client in each window.

    A client's window opens with its first request and lasts
    ``window_seconds``; the count resets once it closes.
    """

    max_requests: int = DEFAULT_RATE_LIMIT_REQUESTS
    window_seconds: float = DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    clock: Callable[[], float] = time.monotonic
    _windows: dict[str, _Window] = field(default_factory=dict, init=False)

    def check(self, client_id: str) -> RateLimitDecision:
        """Count one request for *client_id* and report whether it is allowed."""
        now = self.clock()
        window = self._windows.get(client_id)

        if window is None or now >= window.resets_at:
            window = _Window(count=1, resets_at=now + self.window_seconds)
            self._windows[client_id] = window
            return RateLimitDecision(
                allowed=True,
                remaining=self.max_requests - 1,
                reset_in_seconds=self.window_seconds,
            )

        reset_in = window.resets_at - now
        if window.count >= self.max_requests:
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                reset_in_seconds=reset_in,
                retry_after=float(math.ceil(reset_in)),
            )

        window.count += 1
        return RateLimitDecision(
            allowed=True,
            remaining=self.max_requests - window.count,
            reset_in_seconds=reset_in,
        )

    def reset(self, client_id: str) -> None:
        self._windows.pop(client_id, None)

    def cleanup(self) -> int:
        """Forget clients whose window has closed; returns how many."""
        now = self.clock()
        expired = [cid for cid, w in self._windows.items() if now >= w.resets_at]
        for cid in expired:
            del self._windows[cid]
        return len(expired)

    def stats(self) -> RateLimiterStats:
        now = self.clock()
        active = sum(1 for w in self._windows.values() if now < w.resets_at)
        return RateLimiterStats(total_clients=len(self._windows), active_clients=active)
