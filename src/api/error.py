"""
Exceptions that carry a domain Error out of routes and dependencies.

The handlers registered in ``create_app`` render them with the error
envelope; server errors never expose their internal message.
"""

from typing import Optional

from fastapi import status

from src.libs.result import Error

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_body(code: str, message: str) -> dict:
    return {
        "success": False,
        "message": message,
        "error": {"code": code, "message": message},
    }


class ApiError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, base_error: Error, status_code: Optional[int] = None):
        self.base_error = base_error
        if status_code is not None:
            self.status_code = status_code
        super().__init__(base_error.message)

    @property
    def code(self) -> str:
        return self.base_error.code

    def body(self) -> dict:
        return error_body(self.code, self.base_error.message)


class ClientError(ApiError):
    """4xx: the caller can fix the request."""

    status_code = status.HTTP_400_BAD_REQUEST


class ServerError(ApiError):
    """Always 500; the message is for the log only."""

    def body(self) -> dict:
        return error_body(self.code, INTERNAL_ERROR_MESSAGE)
