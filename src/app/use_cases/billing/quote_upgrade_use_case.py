"""
Use Case: Quote Upgrade

Validates a requested plan / seat change and prices it. Nothing is
written; buying the quote goes through checkout.
"""

from src.app.services.billing_rules import BillingRules
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import (
    count_active_users,
    load_tenant_and_subscription,
)
from src.app.use_cases.billing.dtos import QuoteResponse, UpgradeQuoteCommand
from src.libs.result import Result, Return


class QuoteUpgradeUseCase:
    """
    Business Rules:
    - Lower tiers are rejected (downgrades are scheduled, not bought)
    - Starter is rejected when more than two users are active
    - user_limit must hold the active users and fit the plan maximum
    - Same plan with more seats is priced as a seat delta
    - A plan change is priced at the full plan price for the target seats
    """

    def __init__(self, uow: UnitOfWork, rules: BillingRules):
        self.uow = uow
        self.rules = rules

    async def execute(
        self, context: TenantContext, command: UpgradeQuoteCommand
    ) -> Result[QuoteResponse]:
        active_users = await count_active_users(context)

        async with self.uow:
            loaded = await load_tenant_and_subscription(self.uow, context.tenant_id)
            if loaded.is_err():
                return loaded
            _, subscription = loaded.value

            validated = self.rules.state_machine.validate_upgrade(
                subscription, command.plan, command.user_limit, active_users
            )
            if validated.is_err():
                return validated

            quote = self.rules.pricing.quote(subscription, validated.value, self.rules.now())
            return Return.ok(QuoteResponse.from_quote(quote))
