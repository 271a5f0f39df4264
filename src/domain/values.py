"""
Immutable value objects passed between tenancy, billing and API layers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from .entities.enums import Addon, CheckoutMode, PlanTier


@dataclass(frozen=True)
class TenantIdentifier:
    """A tenant slug and where in the request it was found."""

    slug: str
    source: str  # "header" | "query" | "subdomain" | "state"


@dataclass(frozen=True)
class PlanCatalog:
    """Prices and seat caps per plan, in minor currency units."""

    price_per_user_cents: Dict[str, int]
    max_users: Dict[str, int]
    addon_percentage: float = 0.18
    currency: str = "EUR"

    def price_per_user(self, plan: PlanTier) -> int:
        return int(self.price_per_user_cents.get(plan.value, 0))

    def max_users_for(self, plan: PlanTier) -> int:
        return int(self.max_users.get(plan.value, 1))


@dataclass(frozen=True)
class CheckoutIntent:
    """What the client asked to buy at checkout start."""

    mode: CheckoutMode
    plan: Optional[PlanTier] = None
    user_limit: Optional[int] = None
    addon: Optional[Addon] = None


@dataclass(frozen=True)
class SnapshotTarget:
    """Billing state a completed payment produces."""

    plan: PlanTier
    user_count: int
    addons: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_payment(cls, payment) -> "SnapshotTarget":
        return cls(
            plan=PlanTier(payment.target_plan),
            user_count=payment.target_user_count,
            addons=frozenset(payment.target_addons or []),
        )


@dataclass(frozen=True)
class PriceQuote:
    amount_cents: int
    currency: str
    target_plan: PlanTier
    target_user_limit: int
    is_seat_increase: bool
    prorated: bool = False


@dataclass(frozen=True)
class LicenseSummary:
    """Purchased vs used seats, derived from the subscription."""

    purchased: Optional[int]
    used: int
    price_per_seat_cents: int
    trial_ends_at: Optional[datetime] = None

    @property
    def unlimited(self) -> bool:
        return self.purchased is None

    @property
    def available(self) -> Optional[int]:
        if self.purchased is None:
            return None
        return max(self.purchased - self.used, 0)

    def can_add_user(self) -> bool:
        return self.unlimited or self.used < self.purchased
