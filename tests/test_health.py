"""
tests/test_health.py -- Integration tests for GET /health.

Covers:
  - 200 response with status, version, and components fields
  - components.database and components.rate_limit report 'ok', or 'error'
    when their backend is unreachable
  - No authentication required
"""

from __future__ import annotations

from sqlalchemy.exc import OperationalError

from api.main import VERSION, app
from cache.store import RateLimitCounter


def test_health_returns_200_with_components(api_client):
    """Health endpoint returns 200 with status, version, and components."""
    resp = api_client.client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION
    assert data["components"] == {"app": "ok", "database": "ok", "rate_limit": "ok"}


def test_health_no_auth_required(api_client):
    """Health endpoint is accessible without any authentication headers."""
    resp = api_client.client.get("/health", headers={})
    assert resp.status_code == 200


def test_health_reports_database_error(api_client, monkeypatch):
    """A failing database probe is reported, not raised."""

    def broken_ping():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(api_client.store, "ping", broken_ping)
    resp = api_client.client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["components"]["database"] == "error"


class _UnreachableStorage:
    def check(self) -> bool:
        raise ConnectionError("redis unreachable")


def test_health_reports_rate_limit_backend_error(api_client):
    """An unreachable counter backend shows up as a component error."""
    app.state.rate_limit_counter = RateLimitCounter(storage=_UnreachableStorage())
    resp = api_client.client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["components"]["rate_limit"] == "error"
