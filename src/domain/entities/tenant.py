"""
Tenant Entity

Directory entry for an isolated customer account. Lives in the central
database and carries the coordinates of the tenant's own database.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from .enums import PlanTier, TenantStatus


class Tenant(SQLModel, table=True):
    """
    Tenant entity - isolated customer account.

    Business Rules:
    - slug is unique and URL-safe; it is what requests identify tenants by
    - Never hard-deleted: deactivated + scheduled_deletion_at instead
    - Suspended/deactivated tenants cannot be routed to
    - plan is a legacy mirror of Subscription.plan
    """

    __tablename__ = "tenants"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    slug: str = Field(unique=True, index=True, max_length=63)
    name: str = Field(max_length=255)

    status: TenantStatus = Field(default=TenantStatus.active)
    plan: PlanTier = Field(default=PlanTier.starter)

    # Database coordinates; unset values fall back to TENANT_DB_* config
    db_driver: Optional[str] = Field(default=None, max_length=50)
    db_host: Optional[str] = Field(default=None, max_length=255)
    db_port: Optional[int] = None
    db_name: Optional[str] = Field(default=None, max_length=255)
    db_username: Optional[str] = Field(default=None, max_length=255)
    db_password: Optional[str] = Field(default=None, max_length=255)

    # Customer record at the payment processor
    gateway_customer_id: Optional[str] = Field(default=None, max_length=255)

    settings: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.utcnow(), sa_column=Column(DateTime)
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    scheduled_deletion_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )

    __table_args__ = (
        Index("idx_tenant_status", "status"),
        Index("idx_tenant_deleted_at", "deleted_at"),
    )

    @property
    def is_routable(self) -> bool:
        return self.status == TenantStatus.active
