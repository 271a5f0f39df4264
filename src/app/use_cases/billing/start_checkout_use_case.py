"""
Use Case: Start Checkout

Prices the requested change, opens a payment intent at the gateway and
stores a pending payment snapshot carrying the resolved target state.
The subscription itself is not touched until the payment is confirmed.
"""

import logging
from typing import Optional

from src.app.services.billing_rules import BillingRules
from src.app.services.payment_gateway import IPaymentGateway, PaymentGatewayError
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import (
    count_active_users,
    ensure_gateway_customer,
    load_tenant_and_subscription,
    record_audit,
)
from src.app.use_cases.billing.dtos import (
    CheckoutStartCommand,
    CheckoutStartResponse,
    PaymentView,
)
from src.domain import errors
from src.domain.base import add_month
from src.domain.entities import PaymentSnapshot, Subscription
from src.domain.entities.enums import CheckoutMode, PaymentStatus
from src.domain.values import CheckoutIntent, SnapshotTarget
from src.libs.result import Error, Result, Return

logger = logging.getLogger(__name__)


class StartCheckoutUseCase:
    """
    Business Logic:
    1. Validate the intent against the subscription (by mode)
    2. Resolve the target state and price it
    3. Create the gateway intent
    4. Persist the pending snapshot and an audit event
    """

    def __init__(self, uow: UnitOfWork, gateway: IPaymentGateway, rules: BillingRules):
        self.uow = uow
        self.gateway = gateway
        self.rules = rules

    async def execute(
        self,
        context: TenantContext,
        command: CheckoutStartCommand,
        user_id: Optional[int] = None,
    ) -> Result[CheckoutStartResponse]:
        intent = command.to_intent()
        active_users = await count_active_users(context)

        async with self.uow:
            loaded = await load_tenant_and_subscription(self.uow, context.tenant_id)
            if loaded.is_err():
                return loaded
            tenant, subscription = loaded.value

            resolved = self._resolve_target(subscription, intent, active_users)
            if resolved.is_err():
                return resolved
            target = resolved.value

            now = self.rules.now()
            amount = self.rules.pricing.checkout_amount(intent.mode, subscription, target, now)
            if amount <= 0:
                return Return.err(
                    Error(errors.VALIDATION_FAILED, "Nothing to charge for this change")
                )

            currency = self.rules.catalog.currency
            try:
                customer_id = await ensure_gateway_customer(self.uow, self.gateway, tenant)
                gateway_intent = await self.gateway.create_payment_intent(
                    tenant,
                    amount,
                    currency,
                    {
                        "tenant_slug": tenant.slug,
                        "mode": intent.mode.value,
                        "target_plan": target.plan.value,
                        "target_user_count": str(target.user_count),
                        "customer_id": customer_id,
                    },
                )
            except PaymentGatewayError as e:
                logger.error(f"Checkout start failed for tenant {tenant.slug}: {e}")
                return Return.err(Error(errors.PAYMENT_GATEWAY_ERROR, str(e)))

            status = gateway_intent.status
            if status.is_terminal:
                status = PaymentStatus.pending

            payment = PaymentSnapshot(
                tenant_id=tenant.id,
                subscription_id=subscription.id,
                mode=intent.mode,
                amount_cents=amount,
                currency=currency,
                status=status,
                gateway=self.gateway.name,
                gateway_reference=gateway_intent.reference,
                client_secret=gateway_intent.client_secret,
                target_plan=target.plan,
                target_user_count=target.user_count,
                target_addons=sorted(target.addons),
                base_plan=subscription.plan,
                base_user_limit=subscription.user_limit,
                base_addons=sorted(subscription.addons or []),
                cycle_start=now,
                cycle_end=add_month(now),
                payment_metadata={"active_users": active_users},
            )
            payment = await self.uow.payments.create(payment)

            await record_audit(
                self.uow,
                tenant.id,
                "checkout_started",
                {
                    "payment_id": str(payment.id),
                    "mode": intent.mode.value,
                    "amount_cents": amount,
                    "target_plan": target.plan.value,
                    "target_user_count": target.user_count,
                },
                user_id=user_id,
            )
            await self.uow.commit()

            logger.info(
                f"Checkout {payment.id} started for {tenant.slug}: "
                f"{intent.mode.value} -> {target.plan.value} x{target.user_count} ({amount})"
            )
            return Return.ok(CheckoutStartResponse(payment=PaymentView.from_entity(payment)))

    def _resolve_target(
        self,
        subscription: Subscription,
        intent: CheckoutIntent,
        active_users: int,
    ) -> Result[SnapshotTarget]:
        state_machine = self.rules.state_machine

        if intent.mode == CheckoutMode.plan:
            if intent.plan is None:
                return Return.err(Error(errors.VALIDATION_FAILED, "plan is required"))
            return state_machine.validate_plan_change(subscription, intent.plan, active_users)

        if intent.mode == CheckoutMode.licenses:
            if intent.user_limit is None:
                return Return.err(Error(errors.VALIDATION_FAILED, "user_limit is required"))
            return state_machine.validate_seat_increase(
                subscription, intent.user_limit, active_users
            )

        if intent.addon is None:
            return Return.err(Error(errors.VALIDATION_FAILED, "addon is required"))
        return state_machine.validate_addon_purchase(subscription, intent.addon)
