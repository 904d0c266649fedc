"""Tests for health and root API endpoints."""

import pytest
from httpx import AsyncClient

from cardiac_risk import __version__


class TestHealthEndpoint:
    """Test health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_200(self, client: AsyncClient) -> None:
        """Test health endpoint returns 200 OK."""
        response = await client.get("/health")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_health_returns_service_info(self, client: AsyncClient) -> None:
        """Test health endpoint returns status, name and versions."""
        data = (await client.get("/health")).json()
        assert data["status"] == "healthy"
        assert data["service"] == "cardiac-risk-calculator"
        assert data["version"] == __version__
        assert data["algorithm_version"] == "2008"

    @pytest.mark.asyncio
    async def test_health_returns_timestamp(self, client: AsyncClient) -> None:
        """Test health endpoint returns an ISO timestamp."""
        data = (await client.get("/health")).json()
        assert "T" in data["timestamp"]


class TestRootEndpoint:
    """Test root endpoint."""

    @pytest.mark.asyncio
    async def test_root_returns_api_info(self, client: AsyncClient) -> None:
        """Test root endpoint links docs, health and the API prefix."""
        response = await client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "Cardiac Risk Calculator API"
        assert data["docs"] == "/docs"
        assert data["health"] == "/health"
        assert data["api"] == "/api/v1"
