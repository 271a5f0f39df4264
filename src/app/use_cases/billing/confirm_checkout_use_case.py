"""
Use Case: Confirm Checkout

Confirms a pending payment snapshot with the gateway and, on success,
applies its target state to the subscription exactly once.
"""

import logging
from typing import Optional
from uuid import UUID

from src.app.services.billing_rules import BillingRules
from src.app.services.payment_gateway import (
    IPaymentGateway,
    PaymentGatewayError,
    PaymentProof,
)
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import record_audit
from src.app.use_cases.billing.dtos import (
    CheckoutConfirmCommand,
    CheckoutConfirmResponse,
    PaymentView,
    SubscriptionView,
)
from src.domain import errors
from src.domain.entities.enums import PaymentStatus, SubscriptionStatus
from src.domain.values import SnapshotTarget
from src.libs.result import Error, Result, Return

logger = logging.getLogger(__name__)

STALE_SNAPSHOT_MESSAGE = "Subscription changed since checkout started; start a new checkout"


def parse_payment_id(raw: str) -> Optional[UUID]:
    try:
        return UUID(str(raw))
    except ValueError:
        return None


class ConfirmCheckoutUseCase:
    """
    Business Logic:
    1. Load the snapshot (it must belong to the routed tenant)
    2. Terminal snapshots are returned as they are (idempotent retry)
    3. A snapshot priced against an older subscription state is canceled
       without charging; its target would overwrite a newer paid change
    4. Ask the gateway to confirm
    5. Swap the snapshot status only if it still has the status observed
       in step 1; losing the swap means another request got there first
    6. On success write the target state onto the subscription in the
       same transaction

    The gateway call sits between the read and the swap, so two racing
    confirmations can both reach the gateway; only one can apply.
    """

    def __init__(self, uow: UnitOfWork, gateway: IPaymentGateway, rules: BillingRules):
        self.uow = uow
        self.gateway = gateway
        self.rules = rules

    async def execute(
        self,
        context: TenantContext,
        command: CheckoutConfirmCommand,
        user_id: Optional[int] = None,
    ) -> Result[CheckoutConfirmResponse]:
        payment_id = parse_payment_id(command.payment_id)
        if payment_id is None:
            return Return.err(Error(errors.PAYMENT_NOT_FOUND, "Payment not found"))

        async with self.uow:
            payment = await self.uow.payments.get_by_id(payment_id)
            if payment is None or payment.tenant_id != context.tenant_id:
                return Return.err(Error(errors.PAYMENT_NOT_FOUND, "Payment not found"))

            subscription = await self.uow.subscriptions.get_by_tenant_id(context.tenant_id)
            if subscription is None:
                return Return.err(
                    Error(errors.SUBSCRIPTION_NOT_FOUND, "Tenant has no subscription")
                )

            if payment.status.is_terminal:
                logger.info(f"Payment {payment.id} already {payment.status.value}; nothing to do")
                return Return.ok(self._response(payment, subscription, applied=False))

            if subscription.status == SubscriptionStatus.canceled:
                return Return.err(
                    Error(
                        errors.INVALID_PLAN_TRANSITION,
                        "Subscription is canceled; start a new checkout",
                    )
                )

            observed = payment.status
            if not payment.was_priced_against(subscription):
                return await self._discard_stale(payment, observed, context, user_id)

            proof = PaymentProof(
                card_number=command.card_number,
                payment_method_id=command.payment_method_id,
            )
            try:
                confirmation = await self.gateway.confirm_payment(payment.gateway_reference, proof)
            except PaymentGatewayError as e:
                logger.error(f"Gateway confirmation failed for payment {payment.id}: {e}")
                return Return.err(Error(errors.PAYMENT_GATEWAY_ERROR, str(e)))

            now = self.rules.now()

            if confirmation.succeeded:
                swapped = await self.uow.payments.compare_and_set_status(
                    payment.id,
                    observed,
                    {"status": PaymentStatus.completed, "completed_at": now},
                )
                if not swapped:
                    return self._concurrent(payment.id)

                payment.status = PaymentStatus.completed
                payment.completed_at = now

                before = SubscriptionView.from_entity(subscription)
                target = SnapshotTarget.from_payment(payment)
                self.rules.state_machine.apply_snapshot(
                    subscription, target, payment.cycle_start, payment.cycle_end, now
                )
                await self.uow.subscriptions.update(subscription)

                tenant = await self.uow.tenants.get_by_id(context.tenant_id)
                if tenant is not None and tenant.plan != subscription.plan:
                    tenant.plan = subscription.plan
                    await self.uow.tenants.update(tenant)

                await record_audit(
                    self.uow,
                    context.tenant_id,
                    "snapshot_applied",
                    {
                        "payment_id": str(payment.id),
                        "before": before.model_dump(mode="json"),
                        "after": SubscriptionView.from_entity(subscription).model_dump(
                            mode="json"
                        ),
                    },
                    user_id=user_id,
                )
                await self.uow.commit()

                logger.info(
                    f"Payment {payment.id} applied to {context.slug}: "
                    f"{subscription.plan.value} x{subscription.user_limit}"
                )
                return Return.ok(self._response(payment, subscription, applied=True))

            if confirmation.status == PaymentStatus.failed:
                message = confirmation.message or "Payment declined"
                swapped = await self.uow.payments.compare_and_set_status(
                    payment.id,
                    observed,
                    {"status": PaymentStatus.failed, "failure_message": message[:255]},
                )
                if not swapped:
                    return self._concurrent(payment.id)

                await record_audit(
                    self.uow,
                    context.tenant_id,
                    "payment_failed",
                    {"payment_id": str(payment.id), "message": message},
                    user_id=user_id,
                )
                await self.uow.commit()

                logger.warning(f"Payment {payment.id} for {context.slug} declined: {message}")
                return Return.err(Error(errors.PAYMENT_DECLINED, message))

            # processing / requires_action: still confirmable later
            if confirmation.status != observed:
                swapped = await self.uow.payments.compare_and_set_status(
                    payment.id, observed, {"status": confirmation.status}
                )
                if not swapped:
                    return self._concurrent(payment.id)
                payment.status = confirmation.status
                await self.uow.commit()

            return Return.ok(self._response(payment, subscription, applied=False))

    async def _discard_stale(self, payment, observed, context: TenantContext, user_id) -> Result:
        swapped = await self.uow.payments.compare_and_set_status(
            payment.id,
            observed,
            {"status": PaymentStatus.canceled, "failure_message": STALE_SNAPSHOT_MESSAGE},
        )
        if not swapped:
            return self._concurrent(payment.id)

        await record_audit(
            self.uow,
            context.tenant_id,
            "snapshot_discarded",
            {"payment_id": str(payment.id), "reason": "subscription_changed"},
            user_id=user_id,
        )
        await self.uow.commit()

        logger.warning(
            f"Payment {payment.id} for {context.slug} no longer matches the subscription; canceled"
        )
        return Return.err(Error(errors.CONCURRENT_MODIFICATION, STALE_SNAPSHOT_MESSAGE))

    @staticmethod
    def _concurrent(payment_id: UUID) -> Result:
        logger.warning(f"Payment {payment_id} was confirmed concurrently; not applying twice")
        return Return.err(
            Error(
                errors.CONCURRENT_MODIFICATION,
                "Payment was already processed by another request",
            )
        )

    @staticmethod
    def _response(payment, subscription, applied: bool) -> CheckoutConfirmResponse:
        return CheckoutConfirmResponse(
            payment=PaymentView.from_entity(payment),
            subscription=SubscriptionView.from_entity(subscription),
            applied=applied,
        )
