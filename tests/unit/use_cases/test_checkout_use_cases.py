"""
Unit tests for Start / Confirm / Cancel Checkout Use Cases
The subscription only changes when a payment is confirmed, exactly once.
"""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock
from uuid import uuid4

from src.adapter.gateways.simulated_gateway import (
    CARD_DECLINED,
    CARD_REQUIRES_ACTION,
    CARD_SUCCESS,
    SimulatedPaymentGateway,
)
from src.app.services.payment_gateway import PaymentGatewayError
from src.app.use_cases.billing import (
    CancelCheckoutUseCase,
    ConfirmCheckoutUseCase,
    StartCheckoutUseCase,
)
from src.app.use_cases.billing.dtos import (
    CheckoutCancelCommand,
    CheckoutConfirmCommand,
    CheckoutStartCommand,
)
from src.domain.entities import PaymentSnapshot
from src.domain.entities.enums import (
    Addon,
    CheckoutMode,
    PaymentStatus,
    PlanTier,
    SubscriptionStatus,
)


@pytest.fixture
def gateway():
    return SimulatedPaymentGateway()


async def _pending_payment(gateway, tenant, subscription, **overrides) -> PaymentSnapshot:
    intent = await gateway.create_payment_intent(tenant, 3 * 4400, "EUR", {})
    values = dict(
        id=uuid4(),
        tenant_id=tenant.id,
        subscription_id=subscription.id,
        mode=CheckoutMode.licenses,
        amount_cents=3 * 4400,
        status=PaymentStatus.pending,
        gateway="simulated",
        gateway_reference=intent.reference,
        target_plan=PlanTier.team,
        target_user_count=8,
        target_addons=[],
        base_plan=subscription.plan,
        base_user_limit=subscription.user_limit,
        base_addons=list(subscription.addons or []),
        cycle_start=datetime(2026, 3, 10, 12, 0),
        cycle_end=datetime(2026, 4, 10, 12, 0),
    )
    values.update(overrides)
    return PaymentSnapshot(**values)


# ============================================================================
# Start
# ============================================================================


@pytest.mark.asyncio
async def test_start_seat_checkout_creates_pending_snapshot(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory(plan=PlanTier.team, user_limit=5)
    uow = central_uow(subscription)
    before = subscription.model_dump()

    result = await StartCheckoutUseCase(uow, gateway, rules).execute(
        make_context(active_users=4),
        CheckoutStartCommand(mode=CheckoutMode.licenses, user_limit=8),
        user_id=1,
    )

    assert result.is_ok()
    payment = result.value.payment
    assert payment.status == PaymentStatus.pending
    assert payment.amount_cents == 3 * 4400
    assert payment.target_user_count == 8
    assert payment.gateway_reference.startswith("pi_sim_")

    created = uow.payments.create.call_args[0][0]
    assert created.base_user_limit == 5
    assert created.cycle_end == datetime(2026, 4, 10, 12, 0)

    # Subscription untouched until confirmation
    assert subscription.model_dump() == before
    uow.subscriptions.update.assert_not_called()

    # Gateway customer stored on the tenant
    assert tenant.gateway_customer_id.startswith("cus_sim_")
    audit = uow.audit_events.create.call_args[0][0]
    assert audit.action == "checkout_started"
    uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_start_plan_checkout_from_trial_prices_active_users(
    central_uow, make_context, subscription_factory, gateway, rules
):
    subscription = subscription_factory(
        status=SubscriptionStatus.trialing, plan=PlanTier.enterprise, user_limit=None
    )
    uow = central_uow(subscription)

    result = await StartCheckoutUseCase(uow, gateway, rules).execute(
        make_context(active_users=3),
        CheckoutStartCommand(mode=CheckoutMode.plan, plan=PlanTier.team),
    )

    assert result.value.payment.amount_cents == 3 * 4400
    assert result.value.payment.target_plan == PlanTier.team


@pytest.mark.asyncio
async def test_start_addon_checkout(central_uow, make_context, subscription_factory, gateway, rules):
    subscription = subscription_factory(plan=PlanTier.team, user_limit=10, addons=["planning"])
    uow = central_uow(subscription)

    result = await StartCheckoutUseCase(uow, gateway, rules).execute(
        make_context(active_users=4),
        CheckoutStartCommand(mode=CheckoutMode.addon, addon=Addon.ai),
    )

    payment = result.value.payment
    assert payment.amount_cents == round(44000 * 0.18)
    assert payment.target_addons == ["ai", "planning"]
    assert uow.payments.create.call_args[0][0].base_addons == ["planning"]


@pytest.mark.asyncio
async def test_start_rejects_invalid_intent_before_gateway(
    central_uow, make_context, subscription_factory, rules
):
    subscription = subscription_factory(plan=PlanTier.starter, user_limit=2)
    uow = central_uow(subscription)
    gateway = SimulatedPaymentGateway()
    gateway.create_payment_intent = AsyncMock()

    result = await StartCheckoutUseCase(uow, gateway, rules).execute(
        make_context(active_users=2),
        CheckoutStartCommand(mode=CheckoutMode.licenses, user_limit=3),
    )

    assert result.error.code == "LICENSE_LIMIT_EXCEEDED"
    gateway.create_payment_intent.assert_not_called()
    uow.payments.create.assert_not_called()
    uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_start_requires_mode_fields(central_uow, make_context, subscription_factory, gateway, rules):
    uow = central_uow(subscription_factory())

    result = await StartCheckoutUseCase(uow, gateway, rules).execute(
        make_context(), CheckoutStartCommand(mode=CheckoutMode.plan)
    )

    assert result.error.code == "VALIDATION_FAILED"


@pytest.mark.asyncio
async def test_start_gateway_failure(central_uow, make_context, subscription_factory, rules):
    uow = central_uow(subscription_factory(plan=PlanTier.team, user_limit=5))
    gateway = SimulatedPaymentGateway()
    gateway.create_payment_intent = AsyncMock(side_effect=PaymentGatewayError("timeout"))

    result = await StartCheckoutUseCase(uow, gateway, rules).execute(
        make_context(active_users=2),
        CheckoutStartCommand(mode=CheckoutMode.licenses, user_limit=6),
    )

    assert result.error.code == "PAYMENT_GATEWAY_ERROR"
    uow.payments.create.assert_not_called()
    uow.commit.assert_not_called()


# ============================================================================
# Confirm
# ============================================================================


@pytest.mark.asyncio
async def test_confirm_success_applies_snapshot(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory(plan=PlanTier.team, user_limit=5)
    payment = await _pending_payment(gateway, tenant, subscription)
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)

    result = await ConfirmCheckoutUseCase(uow, gateway, rules).execute(
        make_context(),
        CheckoutConfirmCommand(payment_id=str(payment.id), card_number=CARD_SUCCESS),
        user_id=1,
    )

    assert result.is_ok()
    assert result.value.applied is True
    assert result.value.payment.status == PaymentStatus.completed
    assert subscription.user_limit == 8
    assert subscription.status == SubscriptionStatus.active
    assert subscription.next_renewal_at == datetime(2026, 4, 10, 12, 0)

    uow.payments.compare_and_set_status.assert_called_once()
    args = uow.payments.compare_and_set_status.call_args[0]
    assert args[0] == payment.id
    assert args[1] == PaymentStatus.pending
    assert args[2]["status"] == PaymentStatus.completed

    audit = uow.audit_events.create.call_args[0][0]
    assert audit.action == "snapshot_applied"
    assert audit.event_metadata["before"]["user_limit"] == 5
    assert audit.event_metadata["after"]["user_limit"] == 8
    uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_confirm_plan_change_mirrors_tenant_plan(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    tenant.plan = PlanTier.starter
    subscription = subscription_factory(plan=PlanTier.starter, user_limit=2)
    payment = await _pending_payment(
        gateway, tenant, subscription, mode=CheckoutMode.plan, target_user_count=2
    )
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)

    result = await ConfirmCheckoutUseCase(uow, gateway, rules).execute(
        make_context(), CheckoutConfirmCommand(payment_id=str(payment.id), card_number=CARD_SUCCESS)
    )

    assert result.value.applied
    assert subscription.plan == PlanTier.team
    assert tenant.plan == PlanTier.team
    uow.tenants.update.assert_called_with(tenant)


@pytest.mark.asyncio
async def test_confirm_completed_payment_is_a_noop(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory(plan=PlanTier.team, user_limit=8)
    payment = await _pending_payment(gateway, tenant, subscription, status=PaymentStatus.completed)
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)
    gateway.confirm_payment = AsyncMock()

    result = await ConfirmCheckoutUseCase(uow, gateway, rules).execute(
        make_context(), CheckoutConfirmCommand(payment_id=str(payment.id), card_number=CARD_SUCCESS)
    )

    assert result.is_ok()
    assert result.value.applied is False
    gateway.confirm_payment.assert_not_called()
    uow.subscriptions.update.assert_not_called()
    uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_confirm_lost_race_applies_nothing(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory(plan=PlanTier.team, user_limit=5)
    payment = await _pending_payment(gateway, tenant, subscription)
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)
    uow.payments.compare_and_set_status = AsyncMock(return_value=False)

    result = await ConfirmCheckoutUseCase(uow, gateway, rules).execute(
        make_context(), CheckoutConfirmCommand(payment_id=str(payment.id), card_number=CARD_SUCCESS)
    )

    assert result.error.code == "CONCURRENT_MODIFICATION"
    assert subscription.user_limit == 5
    uow.subscriptions.update.assert_not_called()
    uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_confirm_discards_snapshot_priced_against_older_state(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    # seats were bought after this add-on checkout started
    subscription = subscription_factory(plan=PlanTier.team, user_limit=8)
    payment = await _pending_payment(
        gateway,
        tenant,
        subscription,
        mode=CheckoutMode.addon,
        target_user_count=5,
        target_addons=["planning"],
        base_user_limit=5,
    )
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)
    gateway.confirm_payment = AsyncMock()

    result = await ConfirmCheckoutUseCase(uow, gateway, rules).execute(
        make_context(), CheckoutConfirmCommand(payment_id=str(payment.id), card_number=CARD_SUCCESS)
    )

    assert result.error.code == "CONCURRENT_MODIFICATION"
    assert subscription.user_limit == 8
    assert subscription.addons == []
    gateway.confirm_payment.assert_not_called()
    uow.subscriptions.update.assert_not_called()

    args = uow.payments.compare_and_set_status.call_args[0]
    assert args[1] == PaymentStatus.pending
    assert args[2]["status"] == PaymentStatus.canceled
    assert uow.audit_events.create.call_args[0][0].action == "snapshot_discarded"
    uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_confirm_discards_snapshot_when_addons_changed(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory(plan=PlanTier.team, user_limit=5, addons=["ai"])
    payment = await _pending_payment(gateway, tenant, subscription, base_addons=[])
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)

    result = await ConfirmCheckoutUseCase(uow, gateway, rules).execute(
        make_context(), CheckoutConfirmCommand(payment_id=str(payment.id), card_number=CARD_SUCCESS)
    )

    assert result.error.code == "CONCURRENT_MODIFICATION"
    assert subscription.user_limit == 5


@pytest.mark.asyncio
async def test_confirm_declined_leaves_subscription_untouched(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory(plan=PlanTier.team, user_limit=5)
    before = subscription.model_dump()
    payment = await _pending_payment(gateway, tenant, subscription)
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)

    result = await ConfirmCheckoutUseCase(uow, gateway, rules).execute(
        make_context(), CheckoutConfirmCommand(payment_id=str(payment.id), card_number=CARD_DECLINED)
    )

    assert result.error.code == "PAYMENT_DECLINED"
    assert result.error.message == "Your card was declined."
    assert subscription.model_dump() == before
    uow.subscriptions.update.assert_not_called()

    values = uow.payments.compare_and_set_status.call_args[0][2]
    assert values["status"] == PaymentStatus.failed
    assert uow.audit_events.create.call_args[0][0].action == "payment_failed"
    uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_confirm_requires_action_stays_confirmable(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory(plan=PlanTier.team, user_limit=5)
    payment = await _pending_payment(gateway, tenant, subscription)
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)

    result = await ConfirmCheckoutUseCase(uow, gateway, rules).execute(
        make_context(),
        CheckoutConfirmCommand(payment_id=str(payment.id), card_number=CARD_REQUIRES_ACTION),
    )

    assert result.value.applied is False
    assert result.value.payment.status == PaymentStatus.requires_action
    assert not payment.status.is_terminal
    assert subscription.user_limit == 5


@pytest.mark.asyncio
async def test_confirm_other_tenants_payment_is_not_found(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory()
    payment = await _pending_payment(gateway, tenant, subscription, tenant_id=uuid4())
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)

    result = await ConfirmCheckoutUseCase(uow, gateway, rules).execute(
        make_context(), CheckoutConfirmCommand(payment_id=str(payment.id), card_number=CARD_SUCCESS)
    )

    assert result.error.code == "PAYMENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_confirm_malformed_payment_id(mock_uow, make_context, gateway, rules):
    result = await ConfirmCheckoutUseCase(mock_uow, gateway, rules).execute(
        make_context(), CheckoutConfirmCommand(payment_id="not-a-uuid")
    )

    assert result.error.code == "PAYMENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_confirm_gateway_error_leaves_snapshot(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory()
    payment = await _pending_payment(gateway, tenant, subscription, gateway_reference="pi_sim_gone")
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)

    result = await ConfirmCheckoutUseCase(uow, gateway, rules).execute(
        make_context(), CheckoutConfirmCommand(payment_id=str(payment.id), card_number=CARD_SUCCESS)
    )

    assert result.error.code == "PAYMENT_GATEWAY_ERROR"
    assert payment.status == PaymentStatus.pending
    uow.payments.compare_and_set_status.assert_not_called()


# ============================================================================
# Cancel
# ============================================================================


@pytest.mark.asyncio
async def test_cancel_pending_checkout(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory()
    payment = await _pending_payment(gateway, tenant, subscription)
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)

    result = await CancelCheckoutUseCase(uow, rules).execute(
        make_context(), CheckoutCancelCommand(payment_id=str(payment.id))
    )

    assert result.value.status == PaymentStatus.canceled
    uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_cancel_completed_checkout_is_rejected(
    central_uow, make_context, subscription_factory, gateway, rules, tenant
):
    subscription = subscription_factory()
    payment = await _pending_payment(gateway, tenant, subscription, status=PaymentStatus.completed)
    uow = central_uow(subscription)
    uow.payments.get_by_id = AsyncMock(return_value=payment)

    result = await CancelCheckoutUseCase(uow, rules).execute(
        make_context(), CheckoutCancelCommand(payment_id=str(payment.id))
    )

    assert result.error.code == "VALIDATION_FAILED"
    uow.payments.compare_and_set_status.assert_not_called()
