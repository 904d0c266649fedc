"""Tests for unit conversion API endpoints."""

import pytest
from httpx import AsyncClient

from cardiac_risk.core.config import settings

PREFIX = settings.api_v1_prefix


class TestConvertEndpoint:
    """Tests for POST /units/convert."""

    @pytest.mark.asyncio
    async def test_cholesterol_to_mmol(self, client: AsyncClient) -> None:
        """Test cholesterol mg/dL to mmol/L."""
        response = await client.post(
            f"{PREFIX}/units/convert",
            json={"value": 200, "kind": "cholesterol", "fromUnit": "mg/dL", "toUnit": "mmol/L"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["value"] == 5.17
        assert data["unit"] == "mmol/L"
        assert data["display"] == "5.17"
        assert data["inReferenceRange"] is True

    @pytest.mark.asyncio
    async def test_glucose_to_mg_dl(self, client: AsyncClient) -> None:
        """Test glucose mmol/L to mg/dL."""
        response = await client.post(
            f"{PREFIX}/units/convert",
            json={"value": 7.0, "kind": "glucose", "fromUnit": "mmol/L", "toUnit": "mg/dL"},
        )
        data = response.json()
        assert data["value"] == 126
        assert data["display"] == "126"

    @pytest.mark.asyncio
    async def test_same_unit(self, client: AsyncClient) -> None:
        """Test converting to the same unit returns the value unchanged."""
        response = await client.post(
            f"{PREFIX}/units/convert",
            json={"value": 5.17, "kind": "cholesterol", "fromUnit": "mmol/L", "toUnit": "mmol/L"},
        )
        assert response.json()["value"] == 5.17

    @pytest.mark.asyncio
    async def test_out_of_reference_range(self, client: AsyncClient) -> None:
        """Test values outside the reference range are flagged."""
        response = await client.post(
            f"{PREFIX}/units/convert",
            json={"value": 40, "kind": "glucose", "fromUnit": "mg/dL", "toUnit": "mmol/L"},
        )
        assert response.json()["inReferenceRange"] is False

    @pytest.mark.asyncio
    async def test_invalid_unit(self, client: AsyncClient) -> None:
        """Test unsupported units are rejected by request validation."""
        response = await client.post(
            f"{PREFIX}/units/convert",
            json={"value": 200, "kind": "cholesterol", "fromUnit": "g/L", "toUnit": "mmol/L"},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_non_numeric_value(self, client: AsyncClient) -> None:
        """Test non-numeric values are rejected."""
        response = await client.post(
            f"{PREFIX}/units/convert",
            json={"value": "abc", "kind": "glucose", "fromUnit": "mg/dL", "toUnit": "mmol/L"},
        )
        assert response.status_code == 422


class TestReferenceEndpoint:
    """Tests for GET /units/reference."""

    @pytest.mark.asyncio
    async def test_reference(self, client: AsyncClient) -> None:
        """Test conversion examples are listed per analyte."""
        response = await client.get(f"{PREFIX}/units/reference")
        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"cholesterol", "glucose"}
        assert data["cholesterol"]["examples"][0] == {"mg_dl": 200, "mmol_l": 5.17}
