"""
auth/oauth.py -- Identity provider registry and callback profile extraction.

Two halves of the provider flow live here:

  build_authorization_url()   The redirect target for GET /auth/{provider}.
                              Pure URL construction via authlib's RFC 6749
                              helper -- client_id, redirect_uri, scope and
                              response_type=code. No network call.

  extract_callback_profile()  Turns callback query parameters into a
                              ProviderProfile. Only pre-resolved profile data
                              (subject id + email) is accepted. A bare
                              authorization code would need a real token
                              exchange with the provider, which this service
                              does not perform, so it fails with 500 (google)
                              or 501 (github).

Supported providers:
  google -- subject from "id" or "sub"
  github -- subject from "id" or "login"

Layer rule: no imports from api/ or cache/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from authlib.oauth2.rfc6749.parameters import prepare_grant_uri

from auth.errors import NotFoundError, NotImplementedExchangeError, ServerError, UnauthorizedError
from auth.models import ProviderProfile
from core.config import get_settings

logger = logging.getLogger("authservice.auth.oauth")


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    authorize_url: str
    scope: str
    subject_params: tuple[str, ...]
    default_name: str
    client_id_setting: str


PROVIDERS: dict[str, ProviderConfig] = {
    "google": ProviderConfig(
        name="google",
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        scope="email profile",
        subject_params=("id", "sub"),
        default_name="Test User",
        client_id_setting="google_client_id",
    ),
    "github": ProviderConfig(
        name="github",
        authorize_url="https://github.com/login/oauth/authorize",
        scope="user:email",
        subject_params=("id", "login"),
        default_name="GitHub User",
        client_id_setting="github_client_id",
    ),
}


def get_provider(provider: str) -> ProviderConfig:
    try:
        return PROVIDERS[provider]
    except KeyError:
        raise NotFoundError(f"Unknown identity provider: {provider}") from None


def callback_url(provider: str) -> str:
    base = get_settings().public_base_url.rstrip("/")
    return f"{base}/api/auth/{provider}/callback"


def build_authorization_url(provider: str) -> str:
    """Return the provider authorization endpoint URL for a login redirect."""
    cfg = get_provider(provider)
    client_id = getattr(get_settings(), cfg.client_id_setting)
    if not client_id:
        logger.warning("%s client id is not configured; the provider will reject this redirect", provider)
    return prepare_grant_uri(
        cfg.authorize_url,
        client_id,
        "code",
        redirect_uri=callback_url(provider),
        scope=cfg.scope,
    )


def extract_callback_profile(provider: str, query: Mapping[str, str]) -> ProviderProfile:
    """Build a ProviderProfile from callback query parameters.

    Raises:
        UnauthorizedError: the provider reported an error, or (google) nothing usable arrived.
        ServerError: (google) only an authorization code arrived.
        NotImplementedExchangeError: (github) no profile arrived.
    """
    cfg = get_provider(provider)

    if query.get("error"):
        logger.info("%s callback returned error=%s", provider, query.get("error"))
        raise UnauthorizedError("Authorization failed")

    email = query.get("email")
    subject = next((query[p] for p in cfg.subject_params if query.get(p)), None)
    if email and subject:
        return ProviderProfile(
            provider=provider,
            subject=subject,
            email=email,
            name=query.get("name") or cfg.default_name,
        )

    if provider == "github":
        raise NotImplementedExchangeError("OAuth code exchange not implemented for testing")
    if query.get("code"):
        raise ServerError("Real OAuth exchange not supported without valid client secrets")
    raise UnauthorizedError("Authorization failed")
