"""
PaymentSnapshot Entity

A payment row that embeds the billing state the payment is meant to
produce. Created pending at checkout start, applied to the subscription
only after the gateway confirms success.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from .enums import CheckoutMode, PaymentStatus, PlanTier


class PaymentSnapshot(SQLModel, table=True):
    """
    PaymentSnapshot entity - append-only billing history.

    Business Rules:
    - target_* columns hold the state being purchased, not the current one
    - base_* columns hold the subscription state the price was computed on
    - Confirming is refused once the subscription no longer matches base_*
    - Leaves a confirmable status (pending/processing/requires_action)
      exactly once, through a compare-and-swap on status
    - completed/failed/canceled rows are never mutated again
    """

    __tablename__ = "payments"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    subscription_id: Optional[UUID] = Field(default=None, foreign_key="subscriptions.id")

    mode: CheckoutMode = Field(default=CheckoutMode.plan)
    amount_cents: int
    currency: str = Field(default="EUR", max_length=3)
    status: PaymentStatus = Field(default=PaymentStatus.pending)

    gateway: str = Field(max_length=50)
    gateway_reference: str = Field(max_length=255, index=True)
    client_secret: Optional[str] = Field(default=None, max_length=255)

    # Target state (what the customer is buying)
    target_plan: PlanTier
    target_user_count: int
    target_addons: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    # Subscription state at checkout start
    base_plan: Optional[PlanTier] = None
    base_user_limit: Optional[int] = None
    base_addons: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    cycle_start: datetime = Field(sa_column=Column(DateTime))
    cycle_end: datetime = Field(sa_column=Column(DateTime))

    failure_message: Optional[str] = Field(default=None, max_length=255)
    payment_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.utcnow(), sa_column=Column(DateTime)
    )
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_payment_tenant_status", "tenant_id", "status"),
        Index("idx_payment_created_at", "created_at"),
    )

    def was_priced_against(self, subscription) -> bool:
        """True while the subscription still has the state recorded at checkout start."""
        if self.base_plan is None or PlanTier(self.base_plan) != PlanTier(subscription.plan):
            return False
        if self.base_user_limit != subscription.user_limit:
            return False
        return sorted(self.base_addons or []) == sorted(subscription.addons or [])
