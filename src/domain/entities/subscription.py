"""
Subscription Entity

One row per tenant in the central database. Holds the purchased plan,
seat count (user_limit), add-ons and any scheduled downgrade.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from .enums import PlanTier, SubscriptionStatus


class Subscription(SQLModel, table=True):
    """
    Subscription entity - billing state of a tenant.

    Business Rules:
    - Exactly one subscription per tenant (unique tenant_id)
    - Starter plan always has user_limit = 2
    - user_limit NULL means unlimited (trial)
    - pending_plan / pending_user_limit are set and cleared together
    - Only mutated by a completed payment snapshot, a renewal, or an
      explicit status/addon/downgrade operation
    """

    __tablename__ = "subscriptions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", unique=True, nullable=False)

    plan: PlanTier = Field(default=PlanTier.starter)
    user_limit: Optional[int] = Field(default=2)
    addons: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    status: SubscriptionStatus = Field(default=SubscriptionStatus.active)

    trial_ends_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    next_renewal_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    billing_period_started_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )
    billing_period_ends_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )
    last_renewal_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # Scheduled downgrade, applied at the next renewal
    pending_plan: Optional[PlanTier] = Field(default=None)
    pending_user_limit: Optional[int] = None
    pending_plan_effective_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )

    # Dunning
    failed_renewal_attempts: int = Field(default=0)
    grace_period_until: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.utcnow(), sa_column=Column(DateTime)
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.utcnow(), sa_column=Column(DateTime)
    )

    __table_args__ = (
        Index("idx_subscription_status", "status"),
        Index("idx_subscription_next_renewal", "next_renewal_at"),
    )

    @property
    def is_trial(self) -> bool:
        return self.status == SubscriptionStatus.trialing

    def has_addon(self, addon: str) -> bool:
        return addon in (self.addons or [])

    def has_pending_downgrade(self) -> bool:
        return self.pending_plan is not None
