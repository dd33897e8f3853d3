"""
tests/test_health.py -- Integration tests for GET /, unmatched routes and API docs.

Covers:
  - GET / returns the liveness envelope with the configured version
  - No authentication required for GET /
  - Unmatched routes return the 404 error envelope
  - /docs and /redoc require a Bearer token
"""

from __future__ import annotations

from core.config import get_settings


def test_root_returns_liveness_envelope(api_client):
    """GET / returns 200 with success, message and data.status/version."""
    client, _ = api_client
    resp = client.get("/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"]
    assert body["data"]["status"] == "ok"
    assert body["data"]["version"] == get_settings().app_version


def test_root_no_auth_required(api_client):
    client, _ = api_client
    assert client.get("/", headers={}).status_code == 200


def test_unknown_route_returns_404_envelope(api_client):
    """Unmatched paths use the same error envelope as every other failure."""
    client, _ = api_client
    resp = client.get("/no/such/route")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "code": "not_found", "message": "Resource not found."}


def test_docs_require_auth(api_client):
    client, _ = api_client
    assert client.get("/docs").status_code == 401
    assert client.get("/redoc").status_code == 401


def test_docs_served_with_token(api_client):
    client, token = api_client
    resp = client.get("/docs", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert "swagger" in resp.text.lower()
