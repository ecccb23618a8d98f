"""
Tests for middleware: security headers, request IDs, CORS, health and metrics.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_security_headers_present(client: AsyncClient):
    """Test that the security headers are present in responses."""
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.headers.get("X-Content-Type-Options") == "nosniff"
    assert response.headers.get("X-Frame-Options") == "DENY"
    assert response.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"
    assert "Permissions-Policy" in response.headers


@pytest.mark.asyncio
async def test_security_headers_on_error_responses(client: AsyncClient):
    """Test that security headers are present on 401 and 404 responses too."""
    for path in ("/auth/me", "/nonexistent/path"):
        response = await client.get(path)

        assert response.status_code in (401, 404)
        assert response.headers.get("X-Content-Type-Options") == "nosniff"


@pytest.mark.asyncio
async def test_hsts_header_not_in_test_env(client: AsyncClient):
    """Test that HSTS is only sent in production."""
    response = await client.get("/health")

    assert response.headers.get("Strict-Transport-Security") is None


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient):
    """Test each response carries a request ID."""
    first = await client.get("/")
    second = await client.get("/")

    assert first.headers.get("X-Request-ID")
    assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client: AsyncClient):
    """Test a client-supplied request ID is echoed back."""
    response = await client.get("/", headers={"X-Request-ID": "trace-123"})

    assert response.headers["X-Request-ID"] == "trace-123"


@pytest.mark.asyncio
async def test_cors_preflight_allows_frontend_origin(client: AsyncClient):
    """Test the configured frontend origin passes CORS preflight."""
    response = await client.options(
        "/auth/login",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_root_and_health(client: AsyncClient):
    """Test the banner and health endpoints need no authentication."""
    root = await client.get("/")
    health = await client.get("/health")

    assert root.json() == {"app": "UniVerse API", "env": "test"}
    assert health.json()["database"] == "connected"
    assert health.json()["cache"] == "disabled"
    assert health.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient):
    """Test that /metrics serves Prometheus text after some traffic."""
    await client.get("/")

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "http_request" in response.text
