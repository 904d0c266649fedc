"""FastAPI application for the Cardiac Risk Calculator."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cardiac_risk import __version__
from cardiac_risk.api import risk_router, units_router
from cardiac_risk.core.auth import is_auth_enabled
from cardiac_risk.core.config import settings
from cardiac_risk.services.risk_engine import get_risk_engine

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Pre-warms the risk engine singleton so the first request does not
    pay for its creation.
    """
    startup_start = time.perf_counter()

    engine_stats = get_risk_engine().get_stats()
    logger.info(
        f"Risk engine ready: framingham {engine_stats['algorithm_version']}, "
        f"family history modifier {'on' if engine_stats['family_history_modifier'] else 'off'}"
    )
    if not is_auth_enabled():
        logger.warning("API key authentication is disabled")

    total_startup_ms = (time.perf_counter() - startup_start) * 1000
    logger.info(f"Server ready - total startup time: {total_startup_ms:.0f}ms")
    app.state.startup_time_ms = total_startup_ms

    yield


app = FastAPI(
    title=settings.app_name,
    description="API for validating patient data and calculating 10-year cardiovascular risk.",
    version=__version__,
    debug=settings.debug,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(risk_router, prefix=settings.api_v1_prefix)
app.include_router(units_router, prefix=settings.api_v1_prefix)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, Any]:
    """Health check endpoint (liveness probe)."""
    return {
        "status": "healthy",
        "service": "cardiac-risk-calculator",
        "version": __version__,
        "algorithm_version": settings.algorithm_version,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "service": "Cardiac Risk Calculator API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "api": settings.api_v1_prefix,
    }
