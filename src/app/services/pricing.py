"""
Price calculation for checkouts, quotes and renewals.

All amounts are integer minor units (cents). Add-ons cost a fixed
percentage of the plan subtotal (price per user x purchased seats).
"""

from datetime import datetime
from typing import Optional

from src.domain.entities.enums import CheckoutMode, PlanTier
from src.domain.entities.subscription import Subscription
from src.domain.values import PlanCatalog, PriceQuote, SnapshotTarget

BILLING_PERIOD_DAYS = 30


class PriceCalculator:
    def __init__(self, catalog: PlanCatalog, prorate_seat_increases: bool = False):
        self.catalog = catalog
        self.prorate_seat_increases = prorate_seat_increases

    @property
    def currency(self) -> str:
        return self.catalog.currency

    def plan_price(self, plan: PlanTier, seats: int) -> int:
        return self.catalog.price_per_user(plan) * max(seats, 0)

    def base_subtotal(self, subscription: Subscription) -> int:
        return self.plan_price(subscription.plan, subscription.user_limit or 0)

    def addon_price(self, subscription: Subscription) -> int:
        return round(self.base_subtotal(subscription) * self.catalog.addon_percentage)

    def seat_delta_price(
        self, subscription: Subscription, user_limit: int, now: Optional[datetime] = None
    ) -> int:
        delta = user_limit - (subscription.user_limit or 0)
        if delta <= 0:
            return 0

        amount = delta * self.catalog.price_per_user(subscription.plan)
        if not self.prorate_seat_increases:
            return amount

        if subscription.next_renewal_at is None or now is None:
            return amount
        days_remaining = max((subscription.next_renewal_at - now).days, 0)
        ratio = min(days_remaining / BILLING_PERIOD_DAYS, 1.0)
        return round(amount * ratio)

    def renewal_price(self, subscription: Subscription) -> int:
        """Plan subtotal plus every active add-on (team only)."""
        base = self.base_subtotal(subscription)
        if subscription.plan != PlanTier.team:
            return base
        addon_count = len(subscription.addons or [])
        return base + round(base * self.catalog.addon_percentage) * addon_count

    def checkout_amount(
        self,
        mode: CheckoutMode,
        subscription: Subscription,
        target: SnapshotTarget,
        now: Optional[datetime] = None,
    ) -> int:
        if mode == CheckoutMode.licenses:
            return self.seat_delta_price(subscription, target.user_count, now)
        if mode == CheckoutMode.addon:
            return self.addon_price(subscription)
        return self.plan_price(target.plan, target.user_count)

    def quote(
        self,
        subscription: Subscription,
        target: SnapshotTarget,
        now: Optional[datetime] = None,
    ) -> PriceQuote:
        is_seat_increase = not subscription.is_trial and target.plan == subscription.plan
        mode = CheckoutMode.licenses if is_seat_increase else CheckoutMode.plan
        return PriceQuote(
            amount_cents=self.checkout_amount(mode, subscription, target, now),
            currency=self.currency,
            target_plan=target.plan,
            target_user_limit=target.user_count,
            is_seat_increase=is_seat_increase,
            prorated=is_seat_increase and self.prorate_seat_increases,
        )
