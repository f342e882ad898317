"""
Admin API Key Authentication

Validates admin API keys for the invitation management endpoints.
"""

from fastapi import Header, status

from config import ApplicationConfig
from src.api.error import ApiError, ClientError


async def verify_admin_api_key(x_admin_api_key: str = Header(None)):
    """
    Verify admin API key from X-Admin-API-Key header.

    Used by back-office tools and other services that create and manage
    invitations. Different from user JWT authentication.

    Args:
        x_admin_api_key: API key from X-Admin-API-Key header

    Raises:
        ClientError: 401 if key is missing or invalid

    Returns:
        True if valid
    """
    if not x_admin_api_key:
        raise ClientError(
            ApiError(code="UNAUTHORIZED", message="Admin API key required"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    if x_admin_api_key != ApplicationConfig.ADMIN_API_KEY:
        raise ClientError(
            ApiError(code="INVALID_API_KEY", message="Invalid admin API key"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    return True
