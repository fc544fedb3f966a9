"""API security and caller identity dependencies."""

import secrets

import structlog
from fastapi import Header, HTTPException, status

from sitechat.config import settings

logger = structlog.get_logger(__name__)


async def verify_api_key(x_api_key: str | None = Header(None, description="API key for authentication")) -> None:
    """
    Verify API key from request header.

    Validates the X-API-Key header against the configured API_KEY. Bypassed
    when REQUIRE_API_KEY=false.

    Raises:
        HTTPException: 401 if API key is invalid or missing when required
    """
    if not settings.require_api_key:
        return

    if not x_api_key:
        logger.warning("api_key_missing")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key is required. Provide it in the X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not settings.api_key:
        logger.error("api_key_not_configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API authentication is not properly configured",
        )

    # Constant-time comparison
    if not secrets.compare_digest(x_api_key, settings.api_key.get_secret_value()):
        logger.warning(
            "api_key_invalid",
            provided_key_prefix=x_api_key[:8] + "..." if len(x_api_key) > 8 else "***",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )


async def get_owner_id(
    x_user_id: str | None = Header(None, description="ID of the authenticated user"),
) -> str:
    """
    Identify the calling user.

    Authentication happens upstream; the authenticating proxy forwards the
    user's ID in the X-User-Id header.

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id.strip()
