"""
API Key authentication dependency.

Control endpoints (start/suspend/resume/stop, plan registration) can be
protected with a shared key. Settings are read per request, so toggling
API_AUTH_ENABLED / API_KEY takes effect without a restart.
"""

import os
import secrets
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,
    description="API key for authentication (required when API_AUTH_ENABLED=true)",
)


def is_auth_enabled() -> bool:
    return os.getenv("API_AUTH_ENABLED", "false").lower() == "true"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "ApiKey"},
    )


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> Optional[str]:
    """
    Verify the X-API-Key header when authentication is enabled.

    Raises:
        HTTPException: 401 if auth enabled and key is missing/invalid

    Returns:
        The API key if valid, None if auth disabled
    """
    if not is_auth_enabled():
        return None

    if not api_key:
        raise _unauthorized("Missing API key. Provide X-API-Key header.")

    expected = os.getenv("API_KEY", "")
    if not expected or not secrets.compare_digest(api_key, expected):
        raise _unauthorized("Invalid API key")

    return api_key
