"""
api/limiter.py -- Per-route, per-client rate limiting as a FastAPI dependency.

    @router.post("/auth/login", dependencies=[Depends(auth_rate_limit)])

The counter itself lives in cache/store.py and is shared process-wide through
app.state.rate_limit_counter, so every router counts against the same
windows.

Keys are (client address, request path). The client address comes from
slowapi's get_remote_address, the same key function the slowapi middleware
uses.

Header emission: the dependency records X-RateLimit-* on request.state and
the middleware in api/main.py copies them onto whatever response the request
ends with -- success, 4xx from the handler, or the 429 itself.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from fastapi import Request
from slowapi.util import get_remote_address

from auth.errors import RateLimitedError
from cache.store import RateLimitCounter
from core.config import get_settings

RATE_LIMIT_HEADERS_STATE = "rate_limit_headers"


def rate_limit(limit: int, window_seconds: int) -> Callable[[Request], None]:
    """Build a dependency allowing `limit` requests per `window_seconds` per client and path."""

    def _dependency(request: Request) -> None:
        counter: RateLimitCounter = request.app.state.rate_limit_counter
        result = counter.allow(get_remote_address(request), request.url.path, limit, window_seconds)
        setattr(request.state, RATE_LIMIT_HEADERS_STATE, result.headers())
        if not result.allowed:
            retry_after = max(0, result.reset_at - int(time.time()))
            raise RateLimitedError(
                "Too many requests, please try again later.",
                headers={"Retry-After": str(retry_after)},
            )

    return _dependency


_settings = get_settings()

# Shared throttle for register, login and provider redirects.
auth_rate_limit = rate_limit(_settings.auth_rate_limit, _settings.auth_rate_window_seconds)
