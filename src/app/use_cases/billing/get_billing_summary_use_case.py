"""
Use Case: Billing Summary

Current subscription, seat usage, effective features and price list for
the routed tenant.
"""

from src.app.services.billing_rules import BillingRules
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import (
    count_active_users,
    license_summary,
    load_tenant_and_subscription,
)
from src.app.use_cases.billing.dtos import (
    BillingSummaryResponse,
    LicenseSummaryResponse,
    SubscriptionView,
)
from src.domain.billing_policy import features_for
from src.libs.result import Result, Return


class GetBillingSummaryUseCase:
    def __init__(self, uow: UnitOfWork, rules: BillingRules):
        self.uow = uow
        self.rules = rules

    async def execute(self, context: TenantContext) -> Result[BillingSummaryResponse]:
        active_users = await count_active_users(context)

        async with self.uow:
            loaded = await load_tenant_and_subscription(self.uow, context.tenant_id)
            if loaded.is_err():
                return loaded
            tenant, subscription = loaded.value

            catalog = self.rules.catalog
            summary = license_summary(subscription, active_users, catalog)
            return Return.ok(
                BillingSummaryResponse(
                    tenant=tenant.slug,
                    subscription=SubscriptionView.from_entity(subscription),
                    licenses=LicenseSummaryResponse.from_summary(summary, catalog.currency),
                    features=features_for(subscription),
                    prices_per_user_cents=dict(catalog.price_per_user_cents),
                    addon_percentage=catalog.addon_percentage,
                    renewal_amount_cents=self.rules.pricing.renewal_price(subscription),
                    currency=catalog.currency,
                )
            )
