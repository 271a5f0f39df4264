"""
Stripe-backed payment gateway.

The Stripe SDK is synchronous; each call runs in a worker thread so the
event loop is never blocked. No retries happen here.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import stripe

from src.app.services.payment_gateway import (
    GatewayConfirmation,
    IPaymentGateway,
    PaymentGatewayError,
    PaymentIntentRef,
    PaymentMethod,
    PaymentProof,
)
from src.domain.entities import Tenant
from src.domain.entities.enums import PaymentStatus

logger = logging.getLogger(__name__)

STRIPE_STATUS_MAP: Dict[str, PaymentStatus] = {
    "succeeded": PaymentStatus.completed,
    "processing": PaymentStatus.processing,
    "requires_action": PaymentStatus.requires_action,
    "requires_confirmation": PaymentStatus.pending,
    "requires_payment_method": PaymentStatus.failed,
    "requires_capture": PaymentStatus.processing,
    "canceled": PaymentStatus.canceled,
}

CONFIRMABLE_STATUSES = ("requires_payment_method", "requires_confirmation")


class StripeNotConfigured(RuntimeError):
    pass


@dataclass(frozen=True)
class StripeConfig:
    secret_key: str


def map_stripe_status(status: str) -> PaymentStatus:
    return STRIPE_STATUS_MAP.get(status, PaymentStatus.pending)


def _to_confirmation(intent, reference: str) -> GatewayConfirmation:
    error = intent.get("last_payment_error") or {}
    if intent["status"] == "requires_payment_method" and not error:
        # nothing has been attempted yet
        return GatewayConfirmation(PaymentStatus.pending, reference)
    status = map_stripe_status(intent["status"])
    message = error.get("message") if status == PaymentStatus.failed else None
    return GatewayConfirmation(status, reference, message)


def _to_payment_method(pm, default_id: Optional[str]) -> PaymentMethod:
    card = pm.get("card") or {}
    return PaymentMethod(
        id=pm["id"],
        brand=card.get("brand", "card"),
        last4=card.get("last4", ""),
        exp_month=card.get("exp_month"),
        exp_year=card.get("exp_year"),
        is_default=pm["id"] == default_id,
    )


class StripePaymentGateway(IPaymentGateway):
    name = "stripe"

    def __init__(self, cfg: StripeConfig):
        if not cfg.secret_key:
            raise StripeNotConfigured("stripe_secret_key_missing")
        stripe.api_key = cfg.secret_key

    async def _call(self, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except stripe.CardError:
            raise
        except stripe.StripeError as e:
            logger.error(f"Stripe call {getattr(fn, '__qualname__', fn)} failed: {e}")
            raise PaymentGatewayError(str(e)) from e

    async def create_customer(self, tenant: Tenant) -> str:
        customer = await self._call(
            stripe.Customer.create,
            name=tenant.name,
            metadata={"tenant_id": str(tenant.id), "tenant_slug": tenant.slug},
        )
        logger.info(f"Stripe customer {customer.id} created for tenant {tenant.slug}")
        return customer.id

    async def create_payment_intent(
        self,
        tenant: Tenant,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, str],
    ) -> PaymentIntentRef:
        params = {
            "amount": amount_cents,
            "currency": currency.lower(),
            "metadata": {"tenant_id": str(tenant.id), **metadata},
        }
        customer_id = metadata.get("customer_id")
        if customer_id:
            params["customer"] = customer_id

        intent = await self._call(stripe.PaymentIntent.create, **params)
        logger.info(
            f"stripe_intent_created tenant={tenant.slug} intent={intent.id} amount={amount_cents}"
        )
        return PaymentIntentRef(
            reference=intent.id,
            status=map_stripe_status(intent.status),
            client_secret=intent.client_secret,
        )

    async def confirm_payment(
        self, reference: str, proof: PaymentProof
    ) -> GatewayConfirmation:
        """
        Report the intent's state, confirming it server-side only when it
        still waits for a payment method and one was supplied. Intents the
        browser already confirmed with the client secret are just read.
        """
        intent = await self._call(stripe.PaymentIntent.retrieve, reference)
        if intent["status"] not in CONFIRMABLE_STATUSES or not proof.payment_method_id:
            return _to_confirmation(intent, reference)

        params = {"payment_method": proof.payment_method_id}
        if proof.off_session:
            params["off_session"] = True
        try:
            intent = await self._call(stripe.PaymentIntent.confirm, reference, **params)
        except stripe.CardError as e:
            logger.warning(f"Stripe declined intent {reference}: {e.user_message}")
            return GatewayConfirmation(PaymentStatus.failed, reference, e.user_message)
        return _to_confirmation(intent, reference)

    async def list_payment_methods(self, customer_id: str) -> List[PaymentMethod]:
        customer = await self._call(stripe.Customer.retrieve, customer_id)
        default_id = (customer.get("invoice_settings") or {}).get("default_payment_method")
        methods = await self._call(
            stripe.PaymentMethod.list, customer=customer_id, type="card"
        )
        return [_to_payment_method(pm, default_id) for pm in methods.data]

    async def store_payment_method(
        self, customer_id: str, proof: PaymentProof, make_default: bool = False
    ) -> PaymentMethod:
        if not proof.payment_method_id:
            raise PaymentGatewayError("Stripe requires a tokenized payment method id")

        try:
            pm = await self._call(
                stripe.PaymentMethod.attach, proof.payment_method_id, customer=customer_id
            )
        except stripe.CardError as e:
            raise PaymentGatewayError(e.user_message or str(e)) from e
        if make_default:
            await self._set_default(customer_id, pm["id"])
        return _to_payment_method(pm, pm["id"] if make_default else None)

    async def set_default_payment_method(
        self, customer_id: str, payment_method_id: str
    ) -> Optional[PaymentMethod]:
        pm = await self._owned_method(customer_id, payment_method_id)
        if pm is None:
            return None
        await self._set_default(customer_id, payment_method_id)
        return _to_payment_method(pm, payment_method_id)

    async def remove_payment_method(self, customer_id: str, payment_method_id: str) -> bool:
        pm = await self._owned_method(customer_id, payment_method_id)
        if pm is None:
            return False
        await self._call(stripe.PaymentMethod.detach, payment_method_id)
        return True

    async def _owned_method(self, customer_id: str, payment_method_id: str):
        try:
            pm = await asyncio.to_thread(stripe.PaymentMethod.retrieve, payment_method_id)
        except stripe.InvalidRequestError:
            return None
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        if pm.get("customer") != customer_id:
            return None
        return pm

    async def _set_default(self, customer_id: str, payment_method_id: str) -> None:
        await self._call(
            stripe.Customer.modify,
            customer_id,
            invoice_settings={"default_payment_method": payment_method_id},
        )
