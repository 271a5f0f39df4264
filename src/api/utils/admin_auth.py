"""
Admin API key check for the scheduler and support endpoints under /admin.
"""

import hmac
from typing import Optional

from fastapi import Header, status

from config import ApplicationConfig
from src.api.error import ClientError
from src.libs.result import Error


def _reject(code: str, message: str) -> ClientError:
    return ClientError(Error(code, message), status_code=status.HTTP_401_UNAUTHORIZED)


async def verify_admin_api_key(
    x_admin_api_key: Optional[str] = Header(None, alias="X-Admin-API-Key"),
) -> bool:
    """
    Raises:
        ClientError: 401 UNAUTHORIZED when the header is missing,
            401 INVALID_API_KEY when it does not match ADMIN_API_KEY
    """
    if not x_admin_api_key:
        raise _reject("UNAUTHORIZED", "Admin API key required")

    expected = ApplicationConfig.ADMIN_API_KEY or ""
    if not expected or not hmac.compare_digest(x_admin_api_key.encode(), expected.encode()):
        raise _reject("INVALID_API_KEY", "Invalid admin API key")
    return True
