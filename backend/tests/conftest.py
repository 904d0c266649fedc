"""Pytest configuration and fixtures for backend tests."""

from collections.abc import AsyncGenerator, Iterator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from cardiac_risk.core.auth import get_api_keys
from cardiac_risk.main import app
from cardiac_risk.services.risk_engine import reset_risk_engine


@pytest.fixture(autouse=True)
def _isolate_singletons(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run every test with auth disabled and a fresh risk engine."""
    monkeypatch.delenv("CRC_API_KEYS", raising=False)
    get_api_keys.cache_clear()
    reset_risk_engine()
    yield
    get_api_keys.cache_clear()
    reset_risk_engine()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def sample_patient() -> dict[str, Any]:
    """55-year-old male, untreated 140/90, never smoker (moderate risk)."""
    return {
        "age": 55,
        "gender": "male",
        "totalCholesterol": 200,
        "hdlCholesterol": 45,
        "cholesterolUnit": "mg/dL",
        "systolicBP": 140,
        "diastolicBP": 90,
        "onBPMedication": False,
        "smokingStatus": "never",
        "hasDiabetes": False,
        "familyHistory": False,
    }


@pytest.fixture
def low_risk_patient() -> dict[str, Any]:
    """35-year-old female with favourable lipids and blood pressure."""
    return {
        "age": 35,
        "gender": "female",
        "totalCholesterol": 180,
        "hdlCholesterol": 60,
        "systolicBP": 110,
        "diastolicBP": 70,
        "smokingStatus": "never",
    }


@pytest.fixture
def high_risk_patient() -> dict[str, Any]:
    """70-year-old male with every major risk factor."""
    return {
        "age": 70,
        "gender": "male",
        "totalCholesterol": 280,
        "hdlCholesterol": 30,
        "systolicBP": 180,
        "diastolicBP": 100,
        "onBPMedication": True,
        "smokingStatus": "current",
        "hasDiabetes": True,
        "familyHistory": True,
    }
