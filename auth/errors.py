"""
auth/errors.py -- Error taxonomy for the auth service.

Every error raised at the orchestrator / gate boundary carries the HTTP status
and a stable machine-readable code. api/main.py registers a single handler for
AuthServiceError that renders the standard ErrorResponse envelope, so neither
auth/ nor cache/ needs to know about FastAPI response objects.

Messages are stable and deliberately generic for credential and token
failures: callers must not be able to tell "no such user" from "wrong
password", or "expired" from "bad signature".

Layer rule: no imports from api/, core/, or cache/.
"""

from __future__ import annotations


class AuthServiceError(Exception):
    """Base class for every expected, client-visible failure."""

    status_code: int = 500
    code: str = "server_error"

    def __init__(self, message: str, *, headers: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.headers = headers or {}


class ValidationError(AuthServiceError):
    """Malformed or missing input."""

    status_code = 400
    code = "validation_error"


class UnauthorizedError(AuthServiceError):
    """Missing, invalid or expired credential or token."""

    status_code = 401
    code = "unauthorized"

    def __init__(self, message: str, *, headers: dict[str, str] | None = None) -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer", **(headers or {})})


class ForbiddenError(AuthServiceError):
    """Authenticated, but the role does not allow the operation."""

    status_code = 403
    code = "forbidden"


class NotFoundError(AuthServiceError):
    status_code = 404
    code = "not_found"


class ConflictError(AuthServiceError):
    """Duplicate unique key (e.g. email already registered)."""

    status_code = 409
    code = "conflict"


class RateLimitedError(AuthServiceError):
    status_code = 429
    code = "rate_limited"


class ServerError(AuthServiceError):
    status_code = 500
    code = "server_error"


class NotImplementedExchangeError(ServerError):
    """The provider callback needs an authorization-code exchange we do not perform."""

    status_code = 501
    code = "not_implemented"
