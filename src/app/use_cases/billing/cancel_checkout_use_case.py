"""
Use Case: Cancel Checkout

Abandons a payment snapshot that has not reached a terminal status.
"""

from typing import Optional

from src.app.services.billing_rules import BillingRules
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import record_audit
from src.app.use_cases.billing.confirm_checkout_use_case import parse_payment_id
from src.app.use_cases.billing.dtos import CheckoutCancelCommand, PaymentView
from src.domain import errors
from src.domain.entities.enums import PaymentStatus
from src.libs.result import Error, Result, Return


class CancelCheckoutUseCase:
    def __init__(self, uow: UnitOfWork, rules: BillingRules):
        self.uow = uow
        self.rules = rules

    async def execute(
        self,
        context: TenantContext,
        command: CheckoutCancelCommand,
        user_id: Optional[int] = None,
    ) -> Result[PaymentView]:
        payment_id = parse_payment_id(command.payment_id)
        if payment_id is None:
            return Return.err(Error(errors.PAYMENT_NOT_FOUND, "Payment not found"))

        async with self.uow:
            payment = await self.uow.payments.get_by_id(payment_id)
            if payment is None or payment.tenant_id != context.tenant_id:
                return Return.err(Error(errors.PAYMENT_NOT_FOUND, "Payment not found"))

            if payment.status == PaymentStatus.canceled:
                return Return.ok(PaymentView.from_entity(payment))
            if payment.status.is_terminal:
                return Return.err(
                    Error(
                        errors.VALIDATION_FAILED,
                        f"Payment is already {payment.status.value}",
                    )
                )

            swapped = await self.uow.payments.compare_and_set_status(
                payment.id, payment.status, {"status": PaymentStatus.canceled}
            )
            if not swapped:
                return Return.err(
                    Error(
                        errors.CONCURRENT_MODIFICATION,
                        "Payment was already processed by another request",
                    )
                )
            payment.status = PaymentStatus.canceled

            await record_audit(
                self.uow,
                context.tenant_id,
                "checkout_canceled",
                {"payment_id": str(payment.id)},
                user_id=user_id,
            )
            await self.uow.commit()

            return Return.ok(PaymentView.from_entity(payment))
