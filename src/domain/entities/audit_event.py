"""
AuditEvent Entity

Immutable log of billing and tenant administration events.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel


class AuditEvent(SQLModel, table=True):
    """
    AuditEvent entity - immutable billing/tenant history.

    Business Rules:
    - Immutable (never updated or deleted)
    - user_id is NULL for system actions (renewals, admin API)
    - Metadata stores the before/after values of the change
    """

    __tablename__ = "audit_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    tenant_id: Optional[UUID] = Field(default=None, index=True)
    user_id: Optional[int] = Field(default=None, index=True)

    action: str = Field(max_length=100)  # e.g., "snapshot_applied"
    event_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.utcnow(), sa_column=Column(DateTime)
    )

    __table_args__ = (
        # Billing history pages on (tenant_id, created_at, id)
        Index("idx_audit_tenant_created", "tenant_id", "created_at", "id"),
        Index("idx_audit_tenant_action", "tenant_id", "action"),
    )
