"""
Payment gateway port.

The billing core depends only on ``IPaymentGateway``; the simulated and
Stripe implementations live in ``src/adapter/gateways``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from src.domain.entities import Tenant
from src.domain.entities.enums import PaymentStatus


class PaymentGatewayError(Exception):
    """Transport or configuration failure talking to the processor."""


@dataclass(frozen=True)
class PaymentIntentRef:
    reference: str
    status: PaymentStatus = PaymentStatus.pending
    client_secret: Optional[str] = None


@dataclass(frozen=True)
class PaymentProof:
    """What the client presents to pay: a card number or a stored method id."""

    card_number: Optional[str] = None
    payment_method_id: Optional[str] = None
    customer_id: Optional[str] = None
    off_session: bool = False  # customer not present (renewals)


@dataclass(frozen=True)
class GatewayConfirmation:
    status: PaymentStatus
    reference: str
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == PaymentStatus.completed


@dataclass(frozen=True)
class PaymentMethod:
    id: str
    brand: str
    last4: str
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None
    is_default: bool = False
    metadata: Dict[str, str] = field(default_factory=dict)


class IPaymentGateway(ABC):
    """Payment processor interface"""

    name: str

    @abstractmethod
    async def create_customer(self, tenant: Tenant) -> str:
        """Create the processor-side customer for a tenant"""
        pass

    @abstractmethod
    async def create_payment_intent(
        self,
        tenant: Tenant,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, str],
    ) -> PaymentIntentRef:
        """Reserve an intent to charge ``amount_cents``"""
        pass

    @abstractmethod
    async def confirm_payment(
        self, reference: str, proof: PaymentProof
    ) -> GatewayConfirmation:
        """Attempt to capture the intent with the given proof"""
        pass

    @abstractmethod
    async def list_payment_methods(self, customer_id: str) -> List[PaymentMethod]:
        pass

    @abstractmethod
    async def store_payment_method(
        self, customer_id: str, proof: PaymentProof, make_default: bool = False
    ) -> PaymentMethod:
        pass

    @abstractmethod
    async def set_default_payment_method(
        self, customer_id: str, payment_method_id: str
    ) -> Optional[PaymentMethod]:
        """None when the method does not belong to the customer"""
        pass

    @abstractmethod
    async def remove_payment_method(self, customer_id: str, payment_method_id: str) -> bool:
        """False when the method does not belong to the customer"""
        pass
