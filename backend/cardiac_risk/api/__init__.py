"""API routers for the Cardiac Risk Calculator."""

from cardiac_risk.api.risk import router as risk_router
from cardiac_risk.api.units import router as units_router

__all__ = [
    "risk_router",
    "units_router",
]
