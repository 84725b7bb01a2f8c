"""
cache/store.py -- TTL-bounded request counters for rate limiting.

Counters live in a `limits` storage backend (the engine under slowapi):

    memory://              in-process, per-worker (default, tests)
    redis://host:6379      shared across workers and processes

Fixed-window semantics: the first hit in a window creates the key with a TTL
of window_seconds; later hits only increment. Once the TTL lapses the key
disappears and the next hit starts a fresh window at 1. The increment is a
single atomic backend primitive (per-key lock in memory, INCR + conditional
EXPIRE script in Redis), so concurrent bursts are never undercounted.

Backend failures fail OPEN: the request is allowed, the failure is logged,
and the result is flagged degraded so callers skip the rate-limit headers.

Usage:
    counter = RateLimitCounter("redis://localhost:6379")
    result = counter.allow("203.0.113.9", "/api/auth/login", limit=10, window_seconds=60)
    if not result.allowed: ...
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from limits.storage import Storage, storage_from_string

logger = logging.getLogger("authservice.cache")

_KEY_PREFIX = "rate_limit"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # epoch seconds when the current window ends
    degraded: bool = False

    def headers(self) -> dict[str, str]:
        if self.degraded:
            return {}
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


class RateLimitCounter:
    def __init__(self, storage_uri: str = "memory://", storage: Storage | None = None) -> None:
        self._storage = storage if storage is not None else storage_from_string(storage_uri)

    @staticmethod
    def key(client_key: str, route_key: str) -> str:
        return f"{_KEY_PREFIX}:{client_key}:{route_key}"

    def allow(self, client_key: str, route_key: str, limit: int, window_seconds: int) -> RateLimitResult:
        """Count one hit for (client_key, route_key) and decide whether it is within limit."""
        key = self.key(client_key, route_key)
        try:
            count = self._storage.incr(key, window_seconds)
            reset_at = math.ceil(self._storage.get_expiry(key))
        except Exception:
            logger.warning("Rate limit backend unavailable; allowing %s", key, exc_info=True)
            return RateLimitResult(allowed=True, limit=limit, remaining=limit, reset_at=0, degraded=True)
        return RateLimitResult(
            allowed=count <= limit,
            limit=limit,
            remaining=max(0, limit - count),
            reset_at=reset_at,
        )

    def check(self) -> bool:
        """Return True if the backend is reachable."""
        try:
            return bool(self._storage.check())
        except Exception:
            logger.warning("Rate limit backend health check failed", exc_info=True)
            return False
