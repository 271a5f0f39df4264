"""
Use Case: Pause / Resume / Cancel Subscription
"""

from typing import Optional

from src.app.services.billing_rules import BillingRules
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import load_tenant_and_subscription, record_audit
from src.app.use_cases.billing.dtos import StatusChangeResponse, SubscriptionView
from src.domain import errors
from src.domain.entities.enums import SubscriptionStatus
from src.libs.result import Error, Result, Return

STATUS_ACTIONS = {
    "pause": SubscriptionStatus.paused,
    "resume": SubscriptionStatus.active,
    "cancel": SubscriptionStatus.canceled,
}


class ChangeSubscriptionStatusUseCase:
    """
    Applies a status transition from the transition table.

    Resume only leaves ``paused``; a past-due subscription becomes active
    again through a successful renewal, not by request.
    """

    def __init__(self, uow: UnitOfWork, rules: BillingRules):
        self.uow = uow
        self.rules = rules

    async def execute(
        self,
        context: TenantContext,
        action: str,
        user_id: Optional[int] = None,
    ) -> Result[StatusChangeResponse]:
        target = STATUS_ACTIONS.get(action)
        if target is None:
            return Return.err(Error(errors.VALIDATION_FAILED, f"Unknown action: {action}"))

        async with self.uow:
            loaded = await load_tenant_and_subscription(self.uow, context.tenant_id)
            if loaded.is_err():
                return loaded
            _, subscription = loaded.value

            if action == "resume" and subscription.status != SubscriptionStatus.paused:
                return Return.err(
                    Error(
                        errors.INVALID_PLAN_TRANSITION,
                        f"Only paused subscriptions can be resumed (is {subscription.status.value})",
                    )
                )

            moved = self.rules.state_machine.transition(subscription, target, self.rules.now())
            if moved.is_err():
                return moved

            await self.uow.subscriptions.update(subscription)
            await record_audit(
                self.uow,
                context.tenant_id,
                "subscription_status_changed",
                {"from": moved.value.value, "to": target.value, "action": action},
                user_id=user_id,
            )
            await self.uow.commit()

            return Return.ok(
                StatusChangeResponse(
                    previous_status=moved.value,
                    subscription=SubscriptionView.from_entity(subscription),
                )
            )
