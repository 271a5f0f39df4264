"""
Response envelope and error-code to HTTP status mapping.
"""

from typing import Generic, NoReturn, Optional, TypeVar

from fastapi import status
from pydantic import BaseModel

from src.api.error import ClientError, ServerError
from src.domain import errors
from src.libs.result import Error

T = TypeVar("T")

STATUS_BY_CODE = {
    errors.NO_TENANT_CONTEXT: status.HTTP_400_BAD_REQUEST,
    errors.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    errors.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    errors.PAYMENT_DECLINED: status.HTTP_402_PAYMENT_REQUIRED,
    errors.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    errors.TENANT_SUSPENDED: status.HTTP_403_FORBIDDEN,
    errors.TENANT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    errors.SUBSCRIPTION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    errors.PAYMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    errors.PAYMENT_METHOD_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    errors.CONCURRENT_MODIFICATION: status.HTTP_409_CONFLICT,
    errors.VALIDATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    errors.LICENSE_LIMIT_EXCEEDED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    errors.INVALID_PLAN_TRANSITION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    errors.PAYMENT_METHOD_REQUIRED: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


class SuccessResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T
    message: Optional[str] = None


def ok(data, message: Optional[str] = None) -> dict:
    return {"success": True, "data": data, "message": message}


def raise_for_error(error: Error) -> NoReturn:
    """Client-facing codes become ClientError, everything else ServerError."""
    status_code = STATUS_BY_CODE.get(error.code)
    if status_code is None:
        raise ServerError(error)
    raise ClientError(error, status_code=status_code)
