"""
API request and response models for the auth service REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are kept
separate from the dataclasses in auth/models.py, which own the internal domain
representation. Route handlers map between the two.

JSON keys are camelCase on the wire (accessToken, refreshToken); Python
attributes stay snake_case through the CamelModel alias generator.

Request fields are Optional on purpose: presence rules ("Please provide name,
email and password") belong to auth/service.py so they produce a 400 with a
stable message instead of pydantic's 422 field list.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(CamelModel):
    """Request body for POST /api/auth/register."""

    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(CamelModel):
    """Request body for POST /api/auth/login."""

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class RefreshRequest(CamelModel):
    """Request body for POST /api/auth/refresh.

    Any JSON value is accepted; anything that is not a verifiable token string
    is a 401 from auth/service.py, not a parse error.
    """

    refresh_token: Any = None


class UserPatch(CamelModel):
    """Request body for PATCH /api/users/me. Only the display name is mutable."""

    name: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(CamelModel):
    """Public projection of a user -- never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    role: str


class TokenPairResponse(CamelModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str


class AccessTokenResponse(CamelModel):
    model_config = ConfigDict(frozen=True)

    access_token: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
