"""Unit tests for the health check endpoint."""

import pytest


@pytest.mark.asyncio
async def test_health_check_returns_ok(async_client):
    """Test that health check returns status ok."""
    response = await async_client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == "0.1.0"


@pytest.mark.asyncio
async def test_health_check_reports_tool_count(async_client):
    """Test that health check counts registered tools."""
    response = await async_client.get("/api/v1/health")

    assert response.json()["tool_count"] == 3


@pytest.mark.asyncio
async def test_health_check_version_format(async_client):
    """Test that version follows semantic versioning format."""
    response = await async_client.get("/api/v1/health")

    version = response.json()["version"]
    parts = version.split(".")
    assert len(parts) == 3
    assert all(part.isdigit() for part in parts)


@pytest.mark.asyncio
async def test_health_check_content_type(async_client):
    """Test that health check returns JSON content type."""
    response = await async_client.get("/api/v1/health")

    assert response.status_code == 200
    assert "application/json" in response.headers["content-type"]


@pytest.mark.asyncio
async def test_health_check_before_startup(async_client, test_app):
    """Test health check when the registry is not initialized."""
    delattr(test_app.state, "registry")

    response = await async_client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "starting"
    assert data["tool_count"] is None
