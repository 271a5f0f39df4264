"""
Table sets for the two kinds of database.

All entities share one SQLModel metadata; each database only gets the
tables that belong in it.
"""

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import SQLModel

from src.domain.entities import (
    AuditEvent,
    PaymentSnapshot,
    PersonalAccessToken,
    Subscription,
    Tenant,
    User,
)

CENTRAL_TABLES = [
    Tenant.__table__,
    Subscription.__table__,
    PaymentSnapshot.__table__,
    AuditEvent.__table__,
    User.__table__,
    PersonalAccessToken.__table__,
]

TENANT_TABLES = [
    User.__table__,
    PersonalAccessToken.__table__,
]


async def create_central_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all, tables=CENTRAL_TABLES)


async def create_tenant_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all, tables=TENANT_TABLES)
