"""
Billing policy rules.

Small named functions for the business rules checkout, upgrades and
downgrades share, so each rule is stated (and tested) once.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

from .entities.enums import PlanTier, SubscriptionStatus
from .entities.subscription import Subscription

STARTER_USER_LIMIT = 2

PLAN_FEATURES: Dict[PlanTier, Dict[str, bool]] = {
    PlanTier.starter: {
        "timesheets": True,
        "expenses": True,
        "travels": False,
        "planning": False,
        "ai": False,
    },
    PlanTier.team: {
        "timesheets": True,
        "expenses": True,
        "travels": True,
        "planning": False,  # addon-based
        "ai": False,  # addon-based
    },
    PlanTier.enterprise: {
        "timesheets": True,
        "expenses": True,
        "travels": True,
        "planning": True,
        "ai": True,
    },
}


def normalize_user_limit(plan: PlanTier, user_limit: Optional[int]) -> Optional[int]:
    """Starter always carries exactly two licenses."""
    if plan == PlanTier.starter:
        return STARTER_USER_LIMIT
    return user_limit


def starter_fits(active_users: int) -> bool:
    return active_users <= STARTER_USER_LIMIT


def target_licenses_for_plan_change(subscription: Subscription, active_users: int) -> int:
    """
    Seat count a plan change purchases.

    - From starter: always 2 (the customer already owns two seats)
    - From a trial: the configured limit, else the active users (min 1)
    - Paid to paid: the current purchased seats; a plan change never
      changes the seat count
    """
    if subscription.is_trial:
        if subscription.user_limit:
            return subscription.user_limit
        return max(active_users, 1)
    if subscription.plan == PlanTier.starter:
        return STARTER_USER_LIMIT
    return subscription.user_limit or 1


def is_higher_tier(current: PlanTier, target: PlanTier) -> bool:
    return target.rank > current.rank


def is_downgrade(
    current_plan: PlanTier,
    current_limit: Optional[int],
    target_plan: PlanTier,
    target_limit: Optional[int],
) -> bool:
    """Lower tier, or same tier with fewer seats."""
    if target_plan.rank < current_plan.rank:
        return True
    if target_plan == current_plan and current_limit is not None and target_limit is not None:
        return target_limit < current_limit
    return False


def can_cancel_downgrade(subscription: Subscription, now: datetime, window_hours: int) -> bool:
    if not subscription.has_pending_downgrade():
        return False
    if subscription.next_renewal_at is None:
        return False
    return subscription.next_renewal_at - now > timedelta(hours=window_hours)


def features_for(subscription: Optional[Subscription]) -> Dict[str, bool]:
    """Effective feature flags: trial behaves like enterprise, team adds addons."""
    if subscription is None:
        return dict(PLAN_FEATURES[PlanTier.starter])

    if subscription.is_trial:
        return dict(PLAN_FEATURES[PlanTier.enterprise])

    features = dict(PLAN_FEATURES[subscription.plan])
    if subscription.status == SubscriptionStatus.canceled:
        return {key: False for key in features}

    if subscription.plan == PlanTier.team:
        for addon in subscription.addons or []:
            if addon in features:
                features[addon] = True
    return features
