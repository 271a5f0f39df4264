from src.adapter.gateways.simulated_gateway import SimulatedPaymentGateway
from src.adapter.gateways.stripe_gateway import StripeConfig, StripePaymentGateway
from src.app.services.payment_gateway import IPaymentGateway


def build_payment_gateway(config) -> IPaymentGateway:
    """Gateway named by ``PAYMENT_GATEWAY`` (``simulated`` or ``stripe``)."""
    name = (getattr(config, "PAYMENT_GATEWAY", "simulated") or "simulated").lower()
    if name == "stripe":
        return StripePaymentGateway(StripeConfig(secret_key=config.STRIPE_SECRET_KEY))
    if name == "simulated":
        return SimulatedPaymentGateway()
    raise ValueError(f"Unknown payment gateway: {name}")
