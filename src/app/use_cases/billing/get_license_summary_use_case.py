"""
Use Case: License Summary

Purchased versus used seats. Derived on every call, never stored.
"""

from src.app.services.billing_rules import BillingRules
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import (
    count_active_users,
    license_summary,
    load_tenant_and_subscription,
)
from src.app.use_cases.billing.dtos import LicenseSummaryResponse
from src.libs.result import Result, Return


class GetLicenseSummaryUseCase:
    def __init__(self, uow: UnitOfWork, rules: BillingRules):
        self.uow = uow
        self.rules = rules

    async def execute(self, context: TenantContext) -> Result[LicenseSummaryResponse]:
        active_users = await count_active_users(context)

        async with self.uow:
            loaded = await load_tenant_and_subscription(self.uow, context.tenant_id)
            if loaded.is_err():
                return loaded
            _, subscription = loaded.value

            summary = license_summary(subscription, active_users, self.rules.catalog)
            return Return.ok(
                LicenseSummaryResponse.from_summary(summary, self.rules.catalog.currency)
            )
