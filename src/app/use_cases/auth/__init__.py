"""
Authentication Use Cases
"""

from .issue_access_token_use_case import IssueAccessTokenUseCase
from .dtos import IssueTokenCommand, IssueTokenResponse, MeResponse, UserInfo

__all__ = [
    # Use Cases
    "IssueAccessTokenUseCase",
    # DTOs - Commands
    "IssueTokenCommand",
    # DTOs - Responses
    "IssueTokenResponse",
    "MeResponse",
    # DTOs - Nested Models
    "UserInfo",
]
