"""
Use Cases: Stored Payment Methods

List, store, set default and remove the cards kept at the gateway for
the tenant's customer record.
"""

import logging
from typing import Optional

from src.app.services.payment_gateway import (
    IPaymentGateway,
    PaymentGatewayError,
    PaymentProof,
)
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.common import ensure_gateway_customer
from src.app.use_cases.billing.dtos import (
    PaymentMethodListResponse,
    PaymentMethodView,
    StorePaymentMethodCommand,
)
from src.domain import errors
from src.libs.result import Error, Result, Return

logger = logging.getLogger(__name__)


def _gateway_error(action: str, slug: str, e: PaymentGatewayError) -> Result:
    logger.error(f"Payment method {action} failed for {slug}: {e}")
    return Return.err(Error(errors.PAYMENT_GATEWAY_ERROR, str(e)))


def _method_not_found(payment_method_id: str) -> Result:
    return Return.err(
        Error(errors.PAYMENT_METHOD_NOT_FOUND, f"Payment method {payment_method_id} not found")
    )


class ListPaymentMethodsUseCase:
    def __init__(self, uow: UnitOfWork, gateway: IPaymentGateway):
        self.uow = uow
        self.gateway = gateway

    async def execute(self, context: TenantContext) -> Result[PaymentMethodListResponse]:
        async with self.uow:
            tenant = await self.uow.tenants.get_by_id(context.tenant_id)
            if tenant is None:
                return Return.err(Error(errors.TENANT_NOT_FOUND, "Tenant not found"))
            if not tenant.gateway_customer_id:
                return Return.ok(PaymentMethodListResponse(payment_methods=[]))
            customer_id = tenant.gateway_customer_id

        try:
            methods = await self.gateway.list_payment_methods(customer_id)
        except PaymentGatewayError as e:
            return _gateway_error("listing", context.slug, e)

        return Return.ok(
            PaymentMethodListResponse(
                payment_methods=[PaymentMethodView.from_method(m) for m in methods]
            )
        )


class StorePaymentMethodUseCase:
    def __init__(self, uow: UnitOfWork, gateway: IPaymentGateway):
        self.uow = uow
        self.gateway = gateway

    async def execute(
        self, context: TenantContext, command: StorePaymentMethodCommand
    ) -> Result[PaymentMethodView]:
        card_number = (command.card_number or "").replace(" ", "") or None
        if card_number is not None and not (card_number.isdigit() and 12 <= len(card_number) <= 19):
            return Return.err(Error(errors.VALIDATION_FAILED, "Invalid card number"))
        if card_number is None and not command.payment_method_id:
            return Return.err(
                Error(errors.PAYMENT_METHOD_REQUIRED, "card_number or payment_method_id is required")
            )

        async with self.uow:
            tenant = await self.uow.tenants.get_by_id(context.tenant_id)
            if tenant is None:
                return Return.err(Error(errors.TENANT_NOT_FOUND, "Tenant not found"))

            try:
                customer_id = await ensure_gateway_customer(self.uow, self.gateway, tenant)
                method = await self.gateway.store_payment_method(
                    customer_id,
                    PaymentProof(
                        card_number=card_number,
                        payment_method_id=command.payment_method_id,
                        customer_id=customer_id,
                    ),
                    make_default=command.make_default,
                )
            except PaymentGatewayError as e:
                return _gateway_error("storing", context.slug, e)

            await self.uow.commit()
            return Return.ok(PaymentMethodView.from_method(method))


class SetDefaultPaymentMethodUseCase:
    def __init__(self, uow: UnitOfWork, gateway: IPaymentGateway):
        self.uow = uow
        self.gateway = gateway

    async def execute(
        self, context: TenantContext, payment_method_id: str
    ) -> Result[PaymentMethodView]:
        customer_id = await _customer_id(self.uow, context)
        if customer_id is None:
            return _method_not_found(payment_method_id)

        try:
            method = await self.gateway.set_default_payment_method(customer_id, payment_method_id)
        except PaymentGatewayError as e:
            return _gateway_error("update", context.slug, e)

        if method is None:
            return _method_not_found(payment_method_id)
        return Return.ok(PaymentMethodView.from_method(method))


class RemovePaymentMethodUseCase:
    def __init__(self, uow: UnitOfWork, gateway: IPaymentGateway):
        self.uow = uow
        self.gateway = gateway

    async def execute(self, context: TenantContext, payment_method_id: str) -> Result[dict]:
        customer_id = await _customer_id(self.uow, context)
        if customer_id is None:
            return _method_not_found(payment_method_id)

        try:
            removed = await self.gateway.remove_payment_method(customer_id, payment_method_id)
        except PaymentGatewayError as e:
            return _gateway_error("removal", context.slug, e)

        if not removed:
            return _method_not_found(payment_method_id)
        return Return.ok({"id": payment_method_id, "removed": True})


async def _customer_id(uow: UnitOfWork, context: TenantContext) -> Optional[str]:
    async with uow:
        tenant = await uow.tenants.get_by_id(context.tenant_id)
        if tenant is None:
            return None
        return tenant.gateway_customer_id
