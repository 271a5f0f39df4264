"""
Use Case: Process Renewal

Runs one renewal for a tenant whose billing period has ended: applies a
scheduled downgrade, charges the default payment method for the new
period and records the outcome. Past-due subscriptions whose grace
period has run out are canceled instead.
"""

import logging
from typing import Optional, Tuple

from src.app.services.billing_rules import BillingRules
from src.app.services.payment_gateway import (
    IPaymentGateway,
    PaymentGatewayError,
    PaymentProof,
)
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.billing.common import record_audit
from src.app.use_cases.billing.dtos import RenewalResponse, SubscriptionView
from src.domain import errors
from src.domain.base import add_month
from src.domain.entities import PaymentSnapshot, Subscription, Tenant
from src.domain.entities.enums import CheckoutMode, PaymentStatus, SubscriptionStatus
from src.libs.result import Error, Result, Return

logger = logging.getLogger(__name__)


class ProcessRenewalUseCase:
    """
    Business Logic:
    1. Cancel a past-due subscription whose grace period has expired
    2. Skip subscriptions that are not due yet, or that used up their
       retries and are waiting out the grace period
    3. Apply the pending downgrade (clears pending fields)
    4. Charge plan price x seats plus add-ons with the default card
    5. Success advances the period; failure marks the subscription
       past_due and starts the grace period
    6. A charge still processing (or waiting on authentication) leaves
       the subscription as it is; the next pass asks the processor again
       instead of charging twice

    Every renewal attempt with a positive amount is recorded as a
    payment row.
    """

    def __init__(self, uow: UnitOfWork, gateway: IPaymentGateway, rules: BillingRules):
        self.uow = uow
        self.gateway = gateway
        self.rules = rules

    async def execute(self, slug: str) -> Result[RenewalResponse]:
        async with self.uow:
            tenant = await self.uow.tenants.get_by_slug(slug)
            if tenant is None:
                return Return.err(Error(errors.TENANT_NOT_FOUND, f"Tenant {slug} not found"))

            subscription = await self.uow.subscriptions.get_by_tenant_id(tenant.id)
            if subscription is None:
                return Return.err(
                    Error(errors.SUBSCRIPTION_NOT_FOUND, "Tenant has no subscription")
                )

            state_machine = self.rules.state_machine
            now = self.rules.now()

            if subscription.status in (SubscriptionStatus.canceled, SubscriptionStatus.paused):
                return Return.err(
                    Error(
                        errors.INVALID_PLAN_TRANSITION,
                        f"{subscription.status.value.capitalize()} subscriptions are not renewed",
                    )
                )

            if state_machine.grace_period_expired(subscription, now):
                state_machine.transition(subscription, SubscriptionStatus.canceled, now)
                await self.uow.subscriptions.update(subscription)
                await record_audit(
                    self.uow,
                    tenant.id,
                    "subscription_status_changed",
                    {
                        "from": SubscriptionStatus.past_due.value,
                        "to": SubscriptionStatus.canceled.value,
                        "reason": "grace_period_expired",
                        "failed_attempts": subscription.failed_renewal_attempts,
                    },
                )
                await self.uow.commit()
                logger.warning(f"Subscription of {slug} canceled after grace period")
                return Return.ok(self._response("canceled", 0, False, subscription))

            if (
                subscription.status == SubscriptionStatus.past_due
                and subscription.failed_renewal_attempts >= self.rules.max_renewal_attempts
            ):
                return Return.ok(
                    self._response(
                        "exhausted",
                        0,
                        False,
                        subscription,
                        "Maximum renewal attempts reached; waiting for the grace period to end",
                    )
                )

            due_at = subscription.next_renewal_at
            if due_at is None and subscription.is_trial:
                due_at = subscription.trial_ends_at
            if due_at is None or due_at > now:
                return Return.ok(self._response("not_due", 0, False, subscription))

            try:
                open_charge = await self._open_renewal_charge(tenant)
                if open_charge is not None:
                    return await self._settle_open_charge(tenant, subscription, open_charge, now)
            except PaymentGatewayError as e:
                logger.error(f"Renewal charge for {slug} could not be checked: {e}")
                return Return.err(Error(errors.PAYMENT_GATEWAY_ERROR, str(e)))

            if subscription.is_trial and not subscription.has_pending_downgrade():
                return Return.err(
                    Error(
                        errors.INVALID_PLAN_TRANSITION,
                        "Trials convert through checkout, not renewal",
                    )
                )

            pending_applied = state_machine.apply_pending_at_renewal(subscription, now)
            if pending_applied:
                tenant.plan = subscription.plan
                await self.uow.tenants.update(tenant)
                await record_audit(
                    self.uow,
                    tenant.id,
                    "pending_plan_applied",
                    {"plan": subscription.plan.value, "user_limit": subscription.user_limit},
                )

            amount = self.rules.pricing.renewal_price(subscription)
            status, message = PaymentStatus.completed, None
            if amount > 0:
                try:
                    status, message = await self._charge(tenant, subscription, amount, now)
                except PaymentGatewayError as e:
                    logger.error(f"Renewal charge for {slug} failed at the gateway: {e}")
                    return Return.err(Error(errors.PAYMENT_GATEWAY_ERROR, str(e)))

            return await self._record_outcome(
                tenant, subscription, status, message, amount, pending_applied, now
            )

    async def _record_outcome(
        self,
        tenant: Tenant,
        subscription: Subscription,
        status: PaymentStatus,
        message: Optional[str],
        amount: int,
        pending_applied: bool,
        now,
    ) -> Result[RenewalResponse]:
        state_machine = self.rules.state_machine
        if status == PaymentStatus.completed:
            state_machine.record_renewal_success(subscription, now)
            outcome, action = "renewed", "subscription_renewed"
        elif status in (PaymentStatus.failed, PaymentStatus.canceled):
            state_machine.record_renewal_failure(subscription, now)
            outcome, action = "failed", "renewal_failed"
        else:
            # processing / requires_action: settled by a later pass
            outcome, action = "pending", "renewal_pending"

        await self.uow.subscriptions.update(subscription)
        await record_audit(
            self.uow,
            tenant.id,
            action,
            {
                "amount_cents": amount,
                "plan": subscription.plan.value,
                "user_limit": subscription.user_limit,
                "failed_attempts": subscription.failed_renewal_attempts,
                "payment_status": status.value,
                "message": message,
            },
        )
        await self.uow.commit()

        if outcome == "renewed":
            logger.info(
                f"Subscription of {tenant.slug} renewed until {subscription.next_renewal_at}"
            )
        elif outcome == "failed":
            logger.warning(
                f"Renewal of {tenant.slug} failed (attempt {subscription.failed_renewal_attempts}"
                f"/{self.rules.max_renewal_attempts}): {message}"
            )
        else:
            logger.info(f"Renewal charge of {tenant.slug} is {status.value}; checking again later")
        return Return.ok(self._response(outcome, amount, pending_applied, subscription, message))

    async def _default_method_id(self, tenant: Tenant) -> Optional[str]:
        if not tenant.gateway_customer_id:
            return None
        methods = await self.gateway.list_payment_methods(tenant.gateway_customer_id)
        default = next((m for m in methods if m.is_default), methods[0] if methods else None)
        return default.id if default else None

    async def _open_renewal_charge(self, tenant: Tenant) -> Optional[PaymentSnapshot]:
        """The newest renewal payment still waiting on the processor, if any."""
        for payment in await self.uow.payments.list_by_tenant(tenant.id, limit=20):
            if (payment.payment_metadata or {}).get("renewal") and not payment.status.is_terminal:
                return payment
        return None

    async def _settle_open_charge(
        self,
        tenant: Tenant,
        subscription: Subscription,
        payment: PaymentSnapshot,
        now,
    ) -> Result[RenewalResponse]:
        method_id = await self._default_method_id(tenant)
        confirmation = await self.gateway.confirm_payment(
            payment.gateway_reference,
            PaymentProof(
                payment_method_id=method_id,
                customer_id=tenant.gateway_customer_id,
                off_session=True,
            ),
        )
        if confirmation.status == payment.status:
            return Return.ok(
                self._response(
                    "pending",
                    payment.amount_cents,
                    False,
                    subscription,
                    f"Renewal charge is still {payment.status.value}",
                )
            )

        values = {"status": confirmation.status}
        if confirmation.succeeded:
            values["completed_at"] = now
        elif confirmation.message:
            values["failure_message"] = confirmation.message[:255]
        swapped = await self.uow.payments.compare_and_set_status(payment.id, payment.status, values)
        if not swapped:
            return Return.err(
                Error(
                    errors.CONCURRENT_MODIFICATION,
                    "Renewal charge was settled by another request",
                )
            )

        return await self._record_outcome(
            tenant,
            subscription,
            confirmation.status,
            confirmation.message,
            payment.amount_cents,
            False,
            now,
        )

    async def _charge(
        self, tenant: Tenant, subscription: Subscription, amount: int, now
    ) -> Tuple[PaymentStatus, Optional[str]]:
        """Charge the default card off-session; returns the payment status and message."""
        method_id = await self._default_method_id(tenant)
        if method_id is None:
            return PaymentStatus.failed, "No payment method on file"

        currency = self.rules.catalog.currency
        intent = await self.gateway.create_payment_intent(
            tenant,
            amount,
            currency,
            {
                "tenant_slug": tenant.slug,
                "mode": "renewal",
                "customer_id": tenant.gateway_customer_id,
            },
        )
        confirmation = await self.gateway.confirm_payment(
            intent.reference,
            PaymentProof(
                payment_method_id=method_id,
                customer_id=tenant.gateway_customer_id,
                off_session=True,
            ),
        )

        cycle_start = subscription.next_renewal_at or now
        await self.uow.payments.create(
            PaymentSnapshot(
                tenant_id=tenant.id,
                subscription_id=subscription.id,
                mode=CheckoutMode.plan,
                amount_cents=amount,
                currency=currency,
                status=confirmation.status,
                gateway=self.gateway.name,
                gateway_reference=intent.reference,
                target_plan=subscription.plan,
                target_user_count=subscription.user_limit or 1,
                target_addons=list(subscription.addons or []),
                base_plan=subscription.plan,
                base_user_limit=subscription.user_limit,
                base_addons=sorted(subscription.addons or []),
                cycle_start=cycle_start,
                cycle_end=add_month(cycle_start),
                failure_message=(confirmation.message or "")[:255] or None,
                payment_metadata={"renewal": True},
                completed_at=now if confirmation.succeeded else None,
            )
        )

        message = confirmation.message
        if confirmation.status in (PaymentStatus.failed, PaymentStatus.canceled) and not message:
            message = "Payment failed"
        return confirmation.status, message

    @staticmethod
    def _response(
        outcome: str,
        amount: int,
        pending_applied: bool,
        subscription: Subscription,
        message: Optional[str] = None,
    ) -> RenewalResponse:
        return RenewalResponse(
            outcome=outcome,
            amount_cents=amount,
            pending_applied=pending_applied,
            subscription=SubscriptionView.from_entity(subscription),
            message=message,
        )
