"""
Deterministic in-memory payment gateway.

Outcomes are keyed off well-known test card numbers so checkout flows can
be exercised end to end without a processor account.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional
from uuid import uuid4

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

CARD_SUCCESS = "4111111111111111"
CARD_DECLINED = "4000000000000002"
CARD_EXPIRED = "4000000000000069"
CARD_PROCESSING_ERROR = "4000000000000119"
CARD_REQUIRES_ACTION = "4000002500003155"

CARD_OUTCOMES: Dict[str, GatewayConfirmation] = {
    CARD_DECLINED: GatewayConfirmation(PaymentStatus.failed, "", "Your card was declined."),
    CARD_EXPIRED: GatewayConfirmation(PaymentStatus.failed, "", "Your card has expired."),
    CARD_PROCESSING_ERROR: GatewayConfirmation(
        PaymentStatus.failed, "", "An error occurred while processing your card."
    ),
    CARD_REQUIRES_ACTION: GatewayConfirmation(
        PaymentStatus.requires_action, "", "Additional authentication required."
    ),
}


def _brand(card_number: str) -> str:
    if card_number.startswith("4"):
        return "visa"
    if card_number.startswith("5"):
        return "mastercard"
    if card_number.startswith("3"):
        return "amex"
    return "card"


class SimulatedPaymentGateway(IPaymentGateway):
    name = "simulated"

    def __init__(self):
        self._intents: Dict[str, dict] = {}
        # customer id -> payment method id -> (method, card number)
        self._methods: Dict[str, Dict[str, tuple]] = {}

    async def create_customer(self, tenant: Tenant) -> str:
        customer_id = f"cus_sim_{uuid4().hex[:14]}"
        self._methods[customer_id] = {}
        logger.info(f"Simulated customer {customer_id} created for tenant {tenant.slug}")
        return customer_id

    async def create_payment_intent(
        self,
        tenant: Tenant,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, str],
    ) -> PaymentIntentRef:
        if amount_cents <= 0:
            raise PaymentGatewayError("Payment amount must be positive")

        reference = f"pi_sim_{uuid4().hex[:24]}"
        self._intents[reference] = {
            "tenant": tenant.slug,
            "amount_cents": amount_cents,
            "currency": currency,
            "metadata": dict(metadata),
            "status": PaymentStatus.pending,
        }
        return PaymentIntentRef(
            reference=reference,
            status=PaymentStatus.pending,
            client_secret=f"{reference}_secret_{uuid4().hex[:16]}",
        )

    async def confirm_payment(
        self, reference: str, proof: PaymentProof
    ) -> GatewayConfirmation:
        intent = self._intents.get(reference)
        if intent is None:
            raise PaymentGatewayError(f"Unknown payment intent {reference}")

        if intent["status"] == PaymentStatus.completed:
            return GatewayConfirmation(PaymentStatus.completed, reference)

        card_number = self._card_for(proof)
        outcome = CARD_OUTCOMES.get(card_number)
        if outcome is None:
            confirmation = GatewayConfirmation(PaymentStatus.completed, reference)
        else:
            confirmation = GatewayConfirmation(outcome.status, reference, outcome.message)

        intent["status"] = confirmation.status
        logger.info(
            f"Simulated payment {reference} for {intent['tenant']}: {confirmation.status.value}"
        )
        return confirmation

    async def list_payment_methods(self, customer_id: str) -> List[PaymentMethod]:
        return [method for method, _ in self._methods.get(customer_id, {}).values()]

    async def store_payment_method(
        self, customer_id: str, proof: PaymentProof, make_default: bool = False
    ) -> PaymentMethod:
        card_number = (proof.card_number or "").replace(" ", "")
        if not card_number.isdigit():
            raise PaymentGatewayError("A card number is required to store a payment method")

        methods = self._methods.setdefault(customer_id, {})
        method = PaymentMethod(
            id=f"pm_sim_{uuid4().hex[:14]}",
            brand=_brand(card_number),
            last4=card_number[-4:],
            exp_month=12,
            exp_year=2030,
            is_default=make_default or not methods,
        )
        if method.is_default:
            self._clear_default(customer_id)
        methods[method.id] = (method, card_number)
        return method

    async def set_default_payment_method(
        self, customer_id: str, payment_method_id: str
    ) -> Optional[PaymentMethod]:
        methods = self._methods.get(customer_id, {})
        if payment_method_id not in methods:
            return None

        self._clear_default(customer_id)
        method, card_number = methods[payment_method_id]
        method = replace(method, is_default=True)
        methods[payment_method_id] = (method, card_number)
        return method

    async def remove_payment_method(self, customer_id: str, payment_method_id: str) -> bool:
        methods = self._methods.get(customer_id, {})
        if payment_method_id not in methods:
            return False
        del methods[payment_method_id]
        return True

    def _card_for(self, proof: PaymentProof) -> Optional[str]:
        if proof.card_number:
            return proof.card_number.replace(" ", "")
        if proof.payment_method_id:
            for methods in self._methods.values():
                if proof.payment_method_id in methods:
                    return methods[proof.payment_method_id][1]
        return None

    def _clear_default(self, customer_id: str) -> None:
        methods = self._methods.get(customer_id, {})
        for method_id, (method, card_number) in methods.items():
            if method.is_default:
                methods[method_id] = (replace(method, is_default=False), card_number)

