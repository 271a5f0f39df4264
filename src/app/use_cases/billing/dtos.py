"""
Billing Use Case DTOs (Data Transfer Objects)

Command and Response classes for the billing use cases.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.app.services.payment_gateway import PaymentMethod
from src.domain.entities import PaymentSnapshot, Subscription
from src.domain.entities.enums import (
    Addon,
    CheckoutMode,
    PaymentStatus,
    PlanTier,
    SubscriptionStatus,
)
from src.domain.values import CheckoutIntent, LicenseSummary, PriceQuote


# ============================================================================
# Command DTOs
# ============================================================================


class UpgradeQuoteCommand(BaseModel):
    plan: PlanTier
    user_limit: int = Field(ge=1)


class CheckoutStartCommand(BaseModel):
    mode: CheckoutMode
    plan: Optional[PlanTier] = None
    user_limit: Optional[int] = Field(default=None, ge=1)
    addon: Optional[Addon] = None

    def to_intent(self) -> CheckoutIntent:
        return CheckoutIntent(
            mode=self.mode, plan=self.plan, user_limit=self.user_limit, addon=self.addon
        )


class CheckoutConfirmCommand(BaseModel):
    payment_id: str
    card_number: Optional[str] = None
    payment_method_id: Optional[str] = None


class CheckoutCancelCommand(BaseModel):
    payment_id: str


class ScheduleDowngradeCommand(BaseModel):
    plan: PlanTier
    user_limit: Optional[int] = Field(default=None, ge=1)


class ToggleAddonCommand(BaseModel):
    addon: Addon


class StorePaymentMethodCommand(BaseModel):
    card_number: Optional[str] = None
    payment_method_id: Optional[str] = None
    make_default: bool = False


# ============================================================================
# Response DTOs
# ============================================================================


class SubscriptionView(BaseModel):
    plan: PlanTier
    status: SubscriptionStatus
    user_limit: Optional[int]
    addons: List[str]
    trial_ends_at: Optional[datetime] = None
    next_renewal_at: Optional[datetime] = None
    billing_period_started_at: Optional[datetime] = None
    billing_period_ends_at: Optional[datetime] = None
    pending_plan: Optional[PlanTier] = None
    pending_user_limit: Optional[int] = None
    pending_plan_effective_at: Optional[datetime] = None
    failed_renewal_attempts: int = 0
    grace_period_until: Optional[datetime] = None

    @classmethod
    def from_entity(cls, subscription: Subscription) -> "SubscriptionView":
        return cls(
            plan=subscription.plan,
            status=subscription.status,
            user_limit=subscription.user_limit,
            addons=list(subscription.addons or []),
            trial_ends_at=subscription.trial_ends_at,
            next_renewal_at=subscription.next_renewal_at,
            billing_period_started_at=subscription.billing_period_started_at,
            billing_period_ends_at=subscription.billing_period_ends_at,
            pending_plan=subscription.pending_plan,
            pending_user_limit=subscription.pending_user_limit,
            pending_plan_effective_at=subscription.pending_plan_effective_at,
            failed_renewal_attempts=subscription.failed_renewal_attempts or 0,
            grace_period_until=subscription.grace_period_until,
        )


class LicenseSummaryResponse(BaseModel):
    purchased: Optional[int]
    used: int
    available: Optional[int]
    unlimited: bool
    can_add_user: bool
    price_per_seat_cents: int
    currency: str
    trial_ends_at: Optional[datetime] = None

    @classmethod
    def from_summary(cls, summary: LicenseSummary, currency: str) -> "LicenseSummaryResponse":
        return cls(
            purchased=summary.purchased,
            used=summary.used,
            available=summary.available,
            unlimited=summary.unlimited,
            can_add_user=summary.can_add_user(),
            price_per_seat_cents=summary.price_per_seat_cents,
            currency=currency,
            trial_ends_at=summary.trial_ends_at,
        )


class BillingSummaryResponse(BaseModel):
    tenant: str
    subscription: SubscriptionView
    licenses: LicenseSummaryResponse
    features: Dict[str, bool]
    prices_per_user_cents: Dict[str, int]
    addon_percentage: float
    renewal_amount_cents: int
    currency: str


class QuoteResponse(BaseModel):
    amount_cents: int
    currency: str
    target_plan: PlanTier
    target_user_limit: int
    is_seat_increase: bool
    prorated: bool

    @classmethod
    def from_quote(cls, quote: PriceQuote) -> "QuoteResponse":
        return cls(
            amount_cents=quote.amount_cents,
            currency=quote.currency,
            target_plan=quote.target_plan,
            target_user_limit=quote.target_user_limit,
            is_seat_increase=quote.is_seat_increase,
            prorated=quote.prorated,
        )


class PaymentView(BaseModel):
    id: str
    mode: CheckoutMode
    status: PaymentStatus
    amount_cents: int
    currency: str
    gateway: str
    gateway_reference: str
    client_secret: Optional[str] = None
    target_plan: PlanTier
    target_user_count: int
    target_addons: List[str]
    failure_message: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, payment: PaymentSnapshot) -> "PaymentView":
        return cls(
            id=str(payment.id),
            mode=payment.mode,
            status=payment.status,
            amount_cents=payment.amount_cents,
            currency=payment.currency,
            gateway=payment.gateway,
            gateway_reference=payment.gateway_reference,
            client_secret=payment.client_secret,
            target_plan=payment.target_plan,
            target_user_count=payment.target_user_count,
            target_addons=list(payment.target_addons or []),
            failure_message=payment.failure_message,
            created_at=payment.created_at,
            completed_at=payment.completed_at,
        )


class CheckoutStartResponse(BaseModel):
    payment: PaymentView


class CheckoutConfirmResponse(BaseModel):
    payment: PaymentView
    subscription: SubscriptionView
    applied: bool


class ScheduleDowngradeResponse(BaseModel):
    subscription: SubscriptionView
    message: str


class CancelDowngradeResponse(BaseModel):
    subscription: SubscriptionView
    canceled_plan: PlanTier


class ToggleAddonResponse(BaseModel):
    addon: Addon
    action: str  # enabled | disabled | no_change
    addons: List[str]
    features: Dict[str, bool]


class StatusChangeResponse(BaseModel):
    previous_status: SubscriptionStatus
    subscription: SubscriptionView


class RenewalResponse(BaseModel):
    outcome: str  # renewed | failed | pending | canceled | exhausted | not_due
    amount_cents: int
    pending_applied: bool
    subscription: SubscriptionView
    message: Optional[str] = None


class PaymentMethodView(BaseModel):
    id: str
    brand: str
    last4: str
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None
    is_default: bool = False

    @classmethod
    def from_method(cls, method: PaymentMethod) -> "PaymentMethodView":
        return cls(
            id=method.id,
            brand=method.brand,
            last4=method.last4,
            exp_month=method.exp_month,
            exp_year=method.exp_year,
            is_default=method.is_default,
        )


class PaymentMethodListResponse(BaseModel):
    payment_methods: List[PaymentMethodView]


class BillingHistoryResponse(BaseModel):
    events: List[dict]
    next_cursor: Optional[str] = None
