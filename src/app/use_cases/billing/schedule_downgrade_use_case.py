"""
Use Case: Schedule Downgrade

Records a lower plan and/or seat count to take effect at the next
renewal. Nothing is charged or refunded now.
"""

from typing import Optional

from src.app.services.billing_rules import BillingRules
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import (
    count_active_users,
    load_tenant_and_subscription,
    record_audit,
)
from src.app.use_cases.billing.dtos import (
    ScheduleDowngradeCommand,
    ScheduleDowngradeResponse,
    SubscriptionView,
)
from src.libs.result import Result, Return

DOWNGRADE_MESSAGE = "Downgrade scheduled. It applies at the next billing cycle; no charge now."


class ScheduleDowngradeUseCase:
    """
    Business Rules:
    - Only one pending downgrade at a time
    - Starter cannot go lower
    - Target must be a lower tier, or the same tier with fewer seats
    - Target must hold the currently active users
    - Only the pending_* fields change
    """

    def __init__(self, uow: UnitOfWork, rules: BillingRules):
        self.uow = uow
        self.rules = rules

    async def execute(
        self,
        context: TenantContext,
        command: ScheduleDowngradeCommand,
        user_id: Optional[int] = None,
    ) -> Result[ScheduleDowngradeResponse]:
        active_users = await count_active_users(context)

        async with self.uow:
            loaded = await load_tenant_and_subscription(self.uow, context.tenant_id)
            if loaded.is_err():
                return loaded
            _, subscription = loaded.value

            scheduled = self.rules.state_machine.schedule_downgrade(
                subscription,
                command.plan,
                command.user_limit,
                active_users,
                self.rules.now(),
            )
            if scheduled.is_err():
                return scheduled

            await self.uow.subscriptions.update(subscription)
            await record_audit(
                self.uow,
                context.tenant_id,
                "downgrade_scheduled",
                {
                    "from_plan": subscription.plan.value,
                    "from_user_limit": subscription.user_limit,
                    "to_plan": subscription.pending_plan.value,
                    "to_user_limit": subscription.pending_user_limit,
                },
                user_id=user_id,
            )
            await self.uow.commit()

            return Return.ok(
                ScheduleDowngradeResponse(
                    subscription=SubscriptionView.from_entity(subscription),
                    message=DOWNGRADE_MESSAGE,
                )
            )
