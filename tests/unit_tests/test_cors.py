"""Tests for cross-origin access from the browser frontend."""

ORIGIN = "http://localhost:3000"


def test_preflight_allowed(client):
    resp = client.options(
        "/api/auth/email/register",
        headers={
            "Origin": ORIGIN,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == ORIGIN
    assert resp.headers["access-control-allow-credentials"] == "true"
    assert "POST" in resp.headers["access-control-allow-methods"]


def test_simple_request_carries_cors_header(client):
    resp = client.get("/api/health", headers={"Origin": ORIGIN})
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] in (ORIGIN, "*")
