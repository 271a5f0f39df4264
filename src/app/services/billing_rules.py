"""
Billing configuration bundled for the use cases.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from src.app.services.pricing import PriceCalculator
from src.domain.base import utcnow
from src.domain.subscription_state import SubscriptionStateMachine
from src.domain.values import PlanCatalog


@dataclass(frozen=True)
class BillingRules:
    catalog: PlanCatalog
    state_machine: SubscriptionStateMachine
    pricing: PriceCalculator
    max_renewal_attempts: int = 3
    clock: Callable[[], datetime] = field(default=utcnow)

    @classmethod
    def from_config(cls, config, clock: Callable[[], datetime] = utcnow) -> "BillingRules":
        catalog = PlanCatalog(
            price_per_user_cents=dict(config.PLAN_PRICE_PER_USER_CENTS),
            max_users=dict(config.PLAN_MAX_USERS),
            addon_percentage=config.ADDON_PERCENTAGE,
            currency=config.BILLING_CURRENCY,
        )
        return cls(
            catalog=catalog,
            state_machine=SubscriptionStateMachine(
                catalog,
                downgrade_cancel_window_hours=config.DOWNGRADE_CANCEL_WINDOW_HOURS,
                grace_period_days=config.GRACE_PERIOD_DAYS,
            ),
            pricing=PriceCalculator(
                catalog, prorate_seat_increases=config.BILLING_PRORATE_SEAT_INCREASES
            ),
            max_renewal_attempts=config.MAX_RENEWAL_ATTEMPTS,
            clock=clock,
        )

    def now(self) -> datetime:
        return self.clock()
