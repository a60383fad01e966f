"""
Admin API Key Authentication

Validates admin API keys for maintenance and service-to-service endpoints.
"""

import secrets

from fastapi import Header, status

from config import ApplicationConfig
from sessionguard.api.error import ClientError
from sessionguard.libs.result import Error


async def verify_admin_api_key(x_admin_api_key: str = Header(None)):
    """
    Verify admin API key from X-Admin-API-Key header.

    Used by internal callers (credential services, schedulers running the
    expiry sweep). Different from user bearer tokens.

    Raises:
        ClientError: 401 if key is missing or invalid

    Returns:
        True if valid
    """
    if not x_admin_api_key:
        raise ClientError(
            Error("UNAUTHORIZED", "Admin API key required"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    valid_admin_key = ApplicationConfig.ADMIN_API_KEY

    if not secrets.compare_digest(x_admin_api_key.encode(), str(valid_admin_key).encode()):
        raise ClientError(
            Error("INVALID_API_KEY", "Invalid admin API key"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    return True
