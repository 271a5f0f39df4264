"""
Billing Service Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import (
    Addon,
    CheckoutMode,
    PaymentStatus,
    PlanTier,
    SubscriptionStatus,
    TenantStatus,
    UserRole,
)

# Export all entities
from .tenant import Tenant
from .subscription import Subscription
from .payment_snapshot import PaymentSnapshot
from .audit_event import AuditEvent
from .user import User
from .access_token import PersonalAccessToken

__all__ = [
    # Enums
    "Addon",
    "CheckoutMode",
    "PaymentStatus",
    "PlanTier",
    "SubscriptionStatus",
    "TenantStatus",
    "UserRole",
    # Central entities
    "Tenant",
    "Subscription",
    "PaymentSnapshot",
    "AuditEvent",
    # Entities present in every database
    "User",
    "PersonalAccessToken",
]
