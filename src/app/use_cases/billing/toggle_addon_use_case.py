"""
Use Case: Toggle Add-on

Team subscriptions switch an add-on on or off. Enterprise and trials
already include every add-on, so the call reports no change.
"""

from typing import Optional

from src.app.services.billing_rules import BillingRules
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import load_tenant_and_subscription, record_audit
from src.app.use_cases.billing.dtos import ToggleAddonCommand, ToggleAddonResponse
from src.domain.billing_policy import features_for
from src.libs.result import Result, Return


class ToggleAddonUseCase:
    def __init__(self, uow: UnitOfWork, rules: BillingRules):
        self.uow = uow
        self.rules = rules

    async def execute(
        self,
        context: TenantContext,
        command: ToggleAddonCommand,
        user_id: Optional[int] = None,
    ) -> Result[ToggleAddonResponse]:
        async with self.uow:
            loaded = await load_tenant_and_subscription(self.uow, context.tenant_id)
            if loaded.is_err():
                return loaded
            _, subscription = loaded.value

            toggled = self.rules.state_machine.toggle_addon(
                subscription, command.addon, self.rules.now()
            )
            if toggled.is_err():
                return toggled
            action = toggled.value

            if action != "no_change":
                await self.uow.subscriptions.update(subscription)
                await record_audit(
                    self.uow,
                    context.tenant_id,
                    "addon_toggled",
                    {"addon": command.addon.value, "action": action},
                    user_id=user_id,
                )
                await self.uow.commit()

            return Return.ok(
                ToggleAddonResponse(
                    addon=command.addon,
                    action=action,
                    addons=list(subscription.addons or []),
                    features=features_for(subscription),
                )
            )
