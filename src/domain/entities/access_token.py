"""
PersonalAccessToken Entity

Bearer tokens, stored in the same database as the user they belong to.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Column, DateTime, Field, SQLModel


class PersonalAccessToken(SQLModel, table=True):
    """
    PersonalAccessToken entity.

    Business Rules:
    - Plain-text form is "{id}|{secret}", shown once at issue time
    - Only the SHA-256 hex digest of the secret is stored
    - expires_at NULL means the token never expires
    """

    __tablename__ = "personal_access_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    name: str = Field(default="api", max_length=255)
    token_hash: str = Field(unique=True, max_length=64)

    last_used_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    expires_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    created_at: datetime = Field(
        default_factory=lambda: datetime.utcnow(), sa_column=Column(DateTime)
    )
