"""
Use Case: Cancel Scheduled Downgrade
"""

from typing import Optional

from src.app.services.billing_rules import BillingRules
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import load_tenant_and_subscription, record_audit
from src.app.use_cases.billing.dtos import CancelDowngradeResponse, SubscriptionView
from src.libs.result import Result, Return


class CancelScheduledDowngradeUseCase:
    """
    Clears a pending downgrade. Refused when the renewal is within
    DOWNGRADE_CANCEL_WINDOW_HOURS or has no date.
    """

    def __init__(self, uow: UnitOfWork, rules: BillingRules):
        self.uow = uow
        self.rules = rules

    async def execute(
        self, context: TenantContext, user_id: Optional[int] = None
    ) -> Result[CancelDowngradeResponse]:
        async with self.uow:
            loaded = await load_tenant_and_subscription(self.uow, context.tenant_id)
            if loaded.is_err():
                return loaded
            _, subscription = loaded.value

            canceled = self.rules.state_machine.cancel_scheduled_downgrade(
                subscription, self.rules.now()
            )
            if canceled.is_err():
                return canceled

            await self.uow.subscriptions.update(subscription)
            await record_audit(
                self.uow,
                context.tenant_id,
                "downgrade_canceled",
                {"canceled_plan": canceled.value.value},
                user_id=user_id,
            )
            await self.uow.commit()

            return Return.ok(
                CancelDowngradeResponse(
                    subscription=SubscriptionView.from_entity(subscription),
                    canceled_plan=canceled.value,
                )
            )
