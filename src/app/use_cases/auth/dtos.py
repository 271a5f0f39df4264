"""
Authentication Use Case DTOs (Data Transfer Objects)
"""

from typing import Optional

from pydantic import BaseModel, Field


# ============================================================================
# Command DTOs
# ============================================================================


class IssueTokenCommand(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)
    token_name: str = Field(default="api", max_length=255)


# ============================================================================
# Response DTOs
# ============================================================================


class UserInfo(BaseModel):
    """Authenticated user in auth responses"""

    id: int
    email: str
    name: str
    role: str


class IssueTokenResponse(BaseModel):
    """Plain-text token, shown once"""

    token: str
    token_type: str = "Bearer"
    user: UserInfo
    tenant: Optional[str] = None


class MeResponse(BaseModel):
    user: UserInfo
    tenant: Optional[str] = None
