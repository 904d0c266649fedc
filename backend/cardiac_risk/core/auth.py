"""API key authentication for the risk calculator endpoints.

Risk calculations operate on patient data, so deployments outside a
trusted network should set CRC_API_KEYS. Without keys the API runs open
for local development.
"""

import logging
import os
from functools import lru_cache

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

logger = logging.getLogger(__name__)

API_KEY_HEADER_NAME = "X-API-Key"
API_KEYS_ENV_VAR = "CRC_API_KEYS"
api_key_header = APIKeyHeader(name=API_KEY_HEADER_NAME, auto_error=False)


@lru_cache
def get_api_keys() -> set[str]:
    """Get configured API keys from environment.

    API keys are read from the CRC_API_KEYS environment variable
    as a comma-separated list.

    Returns:
        Set of valid API keys
    """
    api_keys_str = os.environ.get(API_KEYS_ENV_VAR, "")
    if not api_keys_str:
        logger.warning(
            f"No API keys configured ({API_KEYS_ENV_VAR} not set). "
            "Authentication is disabled for development."
        )
        return set()

    keys = {k.strip() for k in api_keys_str.split(",") if k.strip()}
    logger.info(f"Loaded {len(keys)} API key(s) for authentication")
    return keys


def is_auth_enabled() -> bool:
    """Check if authentication is enabled (any API key configured)."""
    return len(get_api_keys()) > 0


async def verify_api_key(
    api_key: str | None = Security(api_key_header),
) -> str | None:
    """Verify the X-API-Key header against configured keys.

    Args:
        api_key: API key from request header

    Returns:
        The verified API key, or None when authentication is disabled

    Raises:
        HTTPException: 401 if API key is missing or invalid
    """
    api_keys = get_api_keys()

    if not api_keys:
        return None

    if api_key is None:
        logger.warning("API key missing in request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if api_key not in api_keys:
        logger.warning("Invalid API key attempted")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    logger.debug("API key verified successfully")
    return api_key

