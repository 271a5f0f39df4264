"""
Billing Service Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class TenantStatus(str, Enum):
    """Tenant status"""

    active = "active"
    suspended = "suspended"
    deactivated = "deactivated"


class UserRole(str, Enum):
    """User role within a tenant database"""

    owner = "owner"
    admin = "admin"
    member = "member"


class PlanTier(str, Enum):
    """Subscription plan, ordered by rank"""

    starter = "starter"
    team = "team"
    enterprise = "enterprise"

    @property
    def rank(self) -> int:
        return _PLAN_RANK[self]


_PLAN_RANK = {PlanTier.starter: 1, PlanTier.team: 2, PlanTier.enterprise: 3}


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status"""

    trialing = "trialing"
    active = "active"
    past_due = "past_due"
    paused = "paused"
    canceled = "canceled"


class Addon(str, Enum):
    """Billable add-on keys"""

    planning = "planning"
    ai = "ai"


class PaymentStatus(str, Enum):
    """Payment snapshot status"""

    pending = "pending"
    processing = "processing"
    requires_action = "requires_action"
    completed = "completed"
    failed = "failed"
    canceled = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (PaymentStatus.completed, PaymentStatus.failed, PaymentStatus.canceled)


class CheckoutMode(str, Enum):
    """What a checkout is buying"""

    plan = "plan"
    licenses = "licenses"
    addon = "addon"
