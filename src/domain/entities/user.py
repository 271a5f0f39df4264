"""
User Entity

A person who can sign in. The same table exists in every tenant database
(tenant staff, whose active rows are the seats in use) and in the central
database (platform administrators).
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from .enums import UserRole


class User(SQLModel, table=True):
    """
    User entity - stored in the database the user belongs to.

    Business Rules:
    - Email unique within its database
    - Password stored as bcrypt hash (cost factor 12)
    - is_active users count against the subscription's user_limit
    """

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    name: str = Field(default="", max_length=255)
    password_hash: str = Field(max_length=60)  # Bcrypt output is 60 chars

    role: UserRole = Field(default=UserRole.member)
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.utcnow(), sa_column=Column(DateTime)
    )

    __table_args__ = (Index("idx_user_is_active", "is_active"),)
