import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from devcamper._internal.clock import Clock, SystemClock
from devcamper.errors import RateLimitExceededError
from devcamper.pipeline.context import CONTINUE, Fail, RequestContext, StageOutcome

STAGE_NAME = "rate_limiter"

log = structlog.get_logger()


@dataclass
class _Window:
    hits: int
    reset_at: datetime


class RateLimiter:
    """Caps requests per client within a window that opens at the client's first hit.

    Counters live in process memory and are shared by every request. The
    increment-and-check has no await point, so it is atomic on the event loop.

    Parameters:
        max_requests:    Requests allowed per window.
        window_seconds:  Length of the window in seconds.
        clock:           Injectable clock for testing.
        trusted_proxies: Peers whose X-Forwarded-For header names the client.
    """

    name = STAGE_NAME

    def __init__(
        self,
        *,
        max_requests: int,
        window_seconds: int,
        clock: Clock | None = None,
        trusted_proxies: Iterable[str] = (),
    ) -> None:
        if max_requests < 1 or window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window = timedelta(seconds=window_seconds)
        self._clock = clock or SystemClock()
        self.trusted_proxies = frozenset(trusted_proxies)
        self._windows: dict[str, _Window] = {}
        self._next_sweep: datetime | None = None

    def hit(self, key: str) -> _Window:
        now = self._clock.now()
        self._sweep(now)
        window = self._windows.get(key)
        if window is None or now >= window.reset_at:
            window = _Window(hits=0, reset_at=now + self.window)
            self._windows[key] = window
        window.hits += 1
        return window

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)

    def _sweep(self, now: datetime) -> None:
        if self._next_sweep is not None and now < self._next_sweep:
            return
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self.window

    async def process(self, ctx: RequestContext) -> StageOutcome:
        client = ctx.client_address(self.trusted_proxies)
        window = self.hit(client)
        remaining = max(self.max_requests - window.hits, 0)

        ctx.response_headers["X-RateLimit-Limit"] = str(self.max_requests)
        ctx.response_headers["X-RateLimit-Remaining"] = str(remaining)
        ctx.response_headers["X-RateLimit-Reset"] = str(math.ceil(window.reset_at.timestamp()))

        if window.hits > self.max_requests:
            retry_after = max(math.ceil((window.reset_at - self._clock.now()).total_seconds()), 1)
            log.warning("rate_limit_exceeded", client=client, path=ctx.path)
            return Fail(RateLimitExceededError(retry_after))
        return CONTINUE
