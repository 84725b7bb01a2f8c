"""
api/routes/auth.py -- Registration, login, token refresh and provider login.

Routes:
  POST /api/auth/register               -- create a credential account (rate-limited)
  POST /api/auth/login                  -- email + password -> token pair (rate-limited)
  POST /api/auth/refresh                -- refresh token -> new access token
  GET  /api/auth/{provider}             -- 302 to the provider's consent page (rate-limited)
  GET  /api/auth/{provider}/callback    -- provider profile -> token pair

Handlers are plain `def` so bcrypt and database calls run in FastAPI's
threadpool instead of blocking the event loop.

Security:
  Register, login and the provider redirects share the auth throttle
  (AUTH_RATE_LIMIT per AUTH_RATE_WINDOW_SECONDS per client and path).
  Cache-Control: no-store on every response that carries tokens.
  Credential and refresh failures use one generic message each.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse

from api.limiter import auth_rate_limit
from api.models import (
    AccessTokenResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPairResponse,
    UserResponse,
)
from auth import service
from auth.models import TokenPair
from auth.oauth import build_authorization_url, extract_callback_profile
from auth.store import UserStore

# Auth policy:
# - POST /api/auth/register:               public, rate-limited
# - POST /api/auth/login:                  public, rate-limited
# - POST /api/auth/refresh:                public -- the refresh token is the credential
# - GET  /api/auth/{google,github}:        public, rate-limited
# - GET  /api/auth/{google,github}/callback: public -- profile arrives in the query
router = APIRouter()


# ---------------------------------------------------------------------------
# Credential flows
# ---------------------------------------------------------------------------


@router.post(
    "/auth/register",
    response_model=UserResponse,
    status_code=201,
    dependencies=[Depends(auth_rate_limit)],
)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create a new account with role "user".

    400 on missing fields, short password or malformed email; 409 if the
    email is already registered.
    """
    user_store: UserStore = request.app.state.user_store
    user = service.register(user_store, body.name, body.email, body.password)
    return UserResponse(**user.public())


@router.post("/auth/login", response_model=TokenPairResponse, dependencies=[Depends(auth_rate_limit)])
def login(request: Request, response: Response, body: LoginRequest) -> TokenPairResponse:
    """Exchange email and password for an access + refresh token pair.

    Unknown email, provider-only account and wrong password all return the
    same 401 "Invalid credentials".
    """
    user_store: UserStore = request.app.state.user_store
    pair = service.login(user_store, body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return _pair_response(pair)


@router.post("/auth/refresh", response_model=AccessTokenResponse)
def refresh(response: Response, body: RefreshRequest) -> AccessTokenResponse:
    """Mint a new access token. The refresh token is not rotated."""
    access_token = service.refresh(body.refresh_token)
    response.headers["Cache-Control"] = "no-store"
    return AccessTokenResponse(access_token=access_token)


# ---------------------------------------------------------------------------
# Provider flows
# ---------------------------------------------------------------------------


@router.get("/auth/google", dependencies=[Depends(auth_rate_limit)])
async def google_auth() -> RedirectResponse:
    """Redirect to Google's consent page."""
    return RedirectResponse(build_authorization_url("google"), status_code=302)


@router.get("/auth/google/callback", response_model=TokenPairResponse)
def google_callback(request: Request, response: Response) -> TokenPairResponse:
    """Complete a Google login from pre-resolved profile fields (id|sub, email, name)."""
    return _provider_callback("google", request, response)


@router.get("/auth/github", dependencies=[Depends(auth_rate_limit)])
async def github_auth() -> RedirectResponse:
    """Redirect to GitHub's consent page."""
    return RedirectResponse(build_authorization_url("github"), status_code=302)


@router.get("/auth/github/callback", response_model=TokenPairResponse)
def github_callback(request: Request, response: Response) -> TokenPairResponse:
    """Complete a GitHub login from pre-resolved profile fields (id|login, email, name)."""
    return _provider_callback("github", request, response)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _provider_callback(provider: str, request: Request, response: Response) -> TokenPairResponse:
    profile = extract_callback_profile(provider, request.query_params)
    user_store: UserStore = request.app.state.user_store
    pair = service.provider_login(user_store, profile)
    response.headers["Cache-Control"] = "no-store"
    return _pair_response(pair)


def _pair_response(pair: TokenPair) -> TokenPairResponse:
    return TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)
