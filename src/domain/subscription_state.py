"""
Subscription state machine.

Every operation validates first and only then writes fields, so a
rejected operation leaves the subscription exactly as it was.
"""

from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Optional

from src.libs.result import Error, Result, Return

from . import errors
from .base import add_month
from .billing_policy import (
    STARTER_USER_LIMIT,
    can_cancel_downgrade,
    is_downgrade,
    is_higher_tier,
    normalize_user_limit,
    starter_fits,
    target_licenses_for_plan_change,
)
from .entities.enums import Addon, PlanTier, SubscriptionStatus
from .entities.subscription import Subscription
from .values import PlanCatalog, SnapshotTarget

TRANSITIONS: Dict[SubscriptionStatus, FrozenSet[SubscriptionStatus]] = {
    SubscriptionStatus.trialing: frozenset(
        {SubscriptionStatus.active, SubscriptionStatus.canceled}
    ),
    SubscriptionStatus.active: frozenset(
        {
            SubscriptionStatus.past_due,
            SubscriptionStatus.paused,
            SubscriptionStatus.canceled,
        }
    ),
    SubscriptionStatus.past_due: frozenset(
        {SubscriptionStatus.active, SubscriptionStatus.canceled}
    ),
    SubscriptionStatus.paused: frozenset(
        {SubscriptionStatus.active, SubscriptionStatus.canceled}
    ),
    SubscriptionStatus.canceled: frozenset(),
}

# Statuses in which the purchased configuration may change
PURCHASABLE_STATUSES = frozenset(
    {SubscriptionStatus.trialing, SubscriptionStatus.active, SubscriptionStatus.past_due}
)


def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
    return target in TRANSITIONS[current]


def _invalid(message: str) -> Result:
    return Return.err(Error(errors.INVALID_PLAN_TRANSITION, message))


def _license_limit(message: str) -> Result:
    return Return.err(Error(errors.LICENSE_LIMIT_EXCEEDED, message))


class SubscriptionStateMachine:
    """
    Plan, seat, addon and status rules for a single Subscription.

    Validation methods (``validate_*``) never mutate. Mutating methods
    return ``Result`` and write nothing when they return an error.
    """

    def __init__(
        self,
        catalog: PlanCatalog,
        downgrade_cancel_window_hours: int = 24,
        grace_period_days: int = 7,
    ):
        self.catalog = catalog
        self.downgrade_cancel_window_hours = downgrade_cancel_window_hours
        self.grace_period_days = grace_period_days

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def transition(
        self, subscription: Subscription, target: SubscriptionStatus, now: datetime
    ) -> Result[SubscriptionStatus]:
        """Move to ``target``; returns the previous status."""
        current = subscription.status
        if not can_transition(current, target):
            return _invalid(
                f"Cannot change subscription status from {current.value} to {target.value}"
            )

        subscription.status = target
        if current == SubscriptionStatus.trialing:
            subscription.trial_ends_at = None
        if target == SubscriptionStatus.active:
            subscription.grace_period_until = None
            subscription.failed_renewal_attempts = 0
        subscription.updated_at = now
        return Return.ok(current)

    # ------------------------------------------------------------------
    # Upgrades (validated here, applied by a completed payment snapshot)
    # ------------------------------------------------------------------

    def validate_plan_change(
        self, subscription: Subscription, plan: PlanTier, active_users: int
    ) -> Result[SnapshotTarget]:
        if subscription.status not in PURCHASABLE_STATUSES:
            return _invalid(
                f"Subscription is {subscription.status.value}; plan changes are not allowed"
            )

        if plan == PlanTier.starter:
            if not starter_fits(active_users):
                return _license_limit(
                    f"Starter allows {STARTER_USER_LIMIT} users; "
                    f"{active_users} are active"
                )
            return _invalid("Moving to Starter is a downgrade; schedule it instead")

        if not subscription.is_trial and not is_higher_tier(subscription.plan, plan):
            return _invalid(
                f"Cannot upgrade from {subscription.plan.value} to {plan.value}; "
                "schedule a downgrade instead"
            )

        seats = target_licenses_for_plan_change(subscription, active_users)
        max_users = self.catalog.max_users_for(plan)
        if seats > max_users:
            return _license_limit(f"{plan.value} allows at most {max_users} users")

        addons = frozenset()
        if plan == PlanTier.team and not subscription.is_trial:
            addons = frozenset(subscription.addons or [])
        return Return.ok(SnapshotTarget(plan=plan, user_count=seats, addons=addons))

    def validate_seat_increase(
        self, subscription: Subscription, user_limit: int, active_users: int
    ) -> Result[SnapshotTarget]:
        if subscription.status not in PURCHASABLE_STATUSES:
            return _invalid(
                f"Subscription is {subscription.status.value}; seats cannot be added"
            )
        if subscription.is_trial:
            return _invalid("Trials have unlimited seats; choose a plan first")
        if subscription.plan == PlanTier.starter:
            return _license_limit(
                f"Starter is limited to {STARTER_USER_LIMIT} users; upgrade the plan"
            )
        if user_limit < 1:
            return Return.err(
                Error(errors.VALIDATION_FAILED, "user_limit must be at least 1")
            )

        current = subscription.user_limit or 0
        if user_limit < current:
            return _invalid("Seat reductions apply at renewal; schedule a downgrade")
        if user_limit == current:
            return Return.err(
                Error(errors.VALIDATION_FAILED, f"Subscription already has {current} seats")
            )

        max_users = self.catalog.max_users_for(subscription.plan)
        if user_limit > max_users:
            return _license_limit(
                f"{subscription.plan.value} allows at most {max_users} users"
            )
        if user_limit < active_users:
            return _license_limit(
                f"{active_users} users are active; user_limit cannot be {user_limit}"
            )

        return Return.ok(
            SnapshotTarget(
                plan=subscription.plan,
                user_count=user_limit,
                addons=frozenset(subscription.addons or []),
            )
        )

    def validate_addon_purchase(
        self, subscription: Subscription, addon: Addon
    ) -> Result[SnapshotTarget]:
        if subscription.status not in PURCHASABLE_STATUSES or subscription.is_trial:
            return _invalid("Add-ons can only be bought on an active paid subscription")
        if subscription.plan != PlanTier.team:
            return _invalid(f"Add-ons are not sold on the {subscription.plan.value} plan")
        if subscription.has_addon(addon.value):
            return Return.err(
                Error(errors.VALIDATION_FAILED, f"Add-on {addon.value} is already active")
            )

        return Return.ok(
            SnapshotTarget(
                plan=subscription.plan,
                user_count=subscription.user_limit or 1,
                addons=frozenset(subscription.addons or []) | {addon.value},
            )
        )

    def validate_upgrade(
        self,
        subscription: Subscription,
        plan: PlanTier,
        user_limit: int,
        active_users: int,
    ) -> Result[SnapshotTarget]:
        """
        Validate a requested (plan, user_limit) upgrade.

        Same plan means a seat increase; anything else is a plan change,
        which keeps the seat count chosen by the plan-change policy. The
        requested limit must still hold the active users and fit the plan.
        """
        if not subscription.is_trial and plan == subscription.plan:
            return self.validate_seat_increase(subscription, user_limit, active_users)

        if plan != PlanTier.starter:
            if user_limit < active_users:
                return _license_limit(
                    f"{active_users} users are active; user_limit cannot be {user_limit}"
                )
            max_users = self.catalog.max_users_for(plan)
            if user_limit > max_users:
                return _license_limit(f"{plan.value} allows at most {max_users} users")

        return self.validate_plan_change(subscription, plan, active_users)

    def apply_snapshot(
        self,
        subscription: Subscription,
        target: SnapshotTarget,
        cycle_start: Optional[datetime],
        cycle_end: Optional[datetime],
        now: datetime,
    ) -> None:
        """Write a paid-for configuration onto the subscription."""
        subscription.plan = target.plan
        subscription.user_limit = normalize_user_limit(target.plan, target.user_count)
        subscription.addons = sorted(target.addons) if target.plan == PlanTier.team else []
        subscription.status = SubscriptionStatus.active
        subscription.trial_ends_at = None

        start = cycle_start or now
        end = cycle_end or add_month(start)
        subscription.billing_period_started_at = start
        subscription.billing_period_ends_at = end
        subscription.next_renewal_at = end

        subscription.failed_renewal_attempts = 0
        subscription.grace_period_until = None

        # A new purchase supersedes a scheduled reduction
        subscription.pending_plan = None
        subscription.pending_user_limit = None
        subscription.pending_plan_effective_at = None
        subscription.updated_at = now

    # ------------------------------------------------------------------
    # Downgrades
    # ------------------------------------------------------------------

    def schedule_downgrade(
        self,
        subscription: Subscription,
        plan: PlanTier,
        user_limit: Optional[int],
        active_users: int,
        now: datetime,
    ) -> Result[Subscription]:
        if subscription.status == SubscriptionStatus.canceled:
            return _invalid("Subscription is canceled")
        if subscription.has_pending_downgrade():
            return _invalid("A downgrade is already scheduled")
        if subscription.plan == PlanTier.starter and not subscription.is_trial:
            return _invalid("Starter is the lowest plan")

        if plan == PlanTier.starter:
            if not starter_fits(active_users):
                return _license_limit(
                    f"Starter allows {STARTER_USER_LIMIT} users; "
                    f"{active_users} are active"
                )
            target_limit = STARTER_USER_LIMIT
        else:
            target_limit = user_limit or subscription.user_limit or max(active_users, 1)
            if target_limit < 1:
                return Return.err(
                    Error(errors.VALIDATION_FAILED, "user_limit must be at least 1")
                )
            max_users = self.catalog.max_users_for(plan)
            if target_limit > max_users:
                return _license_limit(f"{plan.value} allows at most {max_users} users")
            if target_limit < active_users:
                return _license_limit(
                    f"{active_users} users are active; user_limit cannot be {target_limit}"
                )

        # A trial has no purchased seats; only the tier decides
        current_limit = None if subscription.is_trial else subscription.user_limit
        if not is_downgrade(subscription.plan, current_limit, plan, target_limit):
            return _invalid(
                f"{plan.value} with {target_limit} users is not a downgrade"
            )

        subscription.pending_plan = plan
        subscription.pending_user_limit = target_limit
        subscription.pending_plan_effective_at = (
            subscription.next_renewal_at or subscription.trial_ends_at
        )
        subscription.updated_at = now
        return Return.ok(subscription)

    def cancel_scheduled_downgrade(
        self, subscription: Subscription, now: datetime
    ) -> Result[PlanTier]:
        """Clear the pending downgrade; returns the plan that was pending."""
        if not subscription.has_pending_downgrade():
            return _invalid("No downgrade is scheduled")
        if not can_cancel_downgrade(subscription, now, self.downgrade_cancel_window_hours):
            return _invalid(
                "Scheduled downgrades can only be canceled more than "
                f"{self.downgrade_cancel_window_hours} hours before renewal"
            )

        pending = subscription.pending_plan
        subscription.pending_plan = None
        subscription.pending_user_limit = None
        subscription.pending_plan_effective_at = None
        subscription.updated_at = now
        return Return.ok(pending)

    def apply_pending_at_renewal(self, subscription: Subscription, now: datetime) -> bool:
        """Apply the scheduled downgrade; False when nothing was pending."""
        if not subscription.has_pending_downgrade():
            return False

        tier_changed = subscription.pending_plan != subscription.plan
        subscription.plan = subscription.pending_plan
        subscription.user_limit = normalize_user_limit(
            subscription.pending_plan, subscription.pending_user_limit
        )
        if tier_changed:
            subscription.addons = []

        subscription.pending_plan = None
        subscription.pending_user_limit = None
        subscription.pending_plan_effective_at = None

        if subscription.status == SubscriptionStatus.trialing:
            subscription.status = SubscriptionStatus.active
            subscription.trial_ends_at = None
        subscription.updated_at = now
        return True

    # ------------------------------------------------------------------
    # Add-ons
    # ------------------------------------------------------------------

    def toggle_addon(
        self, subscription: Subscription, addon: Addon, now: datetime
    ) -> Result[str]:
        """Returns ``enabled``, ``disabled`` or ``no_change``."""
        if subscription.status not in (
            SubscriptionStatus.active,
            SubscriptionStatus.trialing,
        ):
            return _invalid(
                f"Add-ons cannot be changed while the subscription is {subscription.status.value}"
            )
        if subscription.is_trial or subscription.plan == PlanTier.enterprise:
            return Return.ok("no_change")
        if subscription.plan == PlanTier.starter:
            return _invalid("Add-ons are not available on the Starter plan")

        addons = list(subscription.addons or [])
        if addon.value in addons:
            addons.remove(addon.value)
            action = "disabled"
        else:
            addons.append(addon.value)
            action = "enabled"

        subscription.addons = sorted(addons)
        subscription.updated_at = now
        return Return.ok(action)

    # ------------------------------------------------------------------
    # Renewal outcomes
    # ------------------------------------------------------------------

    def record_renewal_success(self, subscription: Subscription, now: datetime) -> None:
        start = subscription.next_renewal_at or now
        end = add_month(start)
        subscription.billing_period_started_at = start
        subscription.billing_period_ends_at = end
        subscription.next_renewal_at = end
        subscription.last_renewal_at = now
        subscription.failed_renewal_attempts = 0
        subscription.grace_period_until = None
        if subscription.status == SubscriptionStatus.past_due:
            subscription.status = SubscriptionStatus.active
        subscription.updated_at = now

    def record_renewal_failure(self, subscription: Subscription, now: datetime) -> None:
        subscription.failed_renewal_attempts = (subscription.failed_renewal_attempts or 0) + 1
        if subscription.grace_period_until is None:
            subscription.grace_period_until = now + timedelta(days=self.grace_period_days)
        if subscription.status != SubscriptionStatus.past_due:
            subscription.status = SubscriptionStatus.past_due
        subscription.updated_at = now

    @staticmethod
    def grace_period_expired(subscription: Subscription, now: datetime) -> bool:
        return (
            subscription.status == SubscriptionStatus.past_due
            and subscription.grace_period_until is not None
            and subscription.grace_period_until <= now
        )
