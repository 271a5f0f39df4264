"""
Unit tests for stored payment method use cases, run against the
simulated gateway.
"""

import pytest
from unittest.mock import AsyncMock

from src.adapter.gateways.simulated_gateway import CARD_SUCCESS, SimulatedPaymentGateway
from src.app.use_cases.billing import (
    ListPaymentMethodsUseCase,
    RemovePaymentMethodUseCase,
    SetDefaultPaymentMethodUseCase,
    StorePaymentMethodUseCase,
)
from src.app.use_cases.billing.dtos import StorePaymentMethodCommand


@pytest.fixture
def gateway():
    return SimulatedPaymentGateway()


@pytest.fixture
def wired_uow(mock_uow, tenant):
    mock_uow.tenants.get_by_id = AsyncMock(return_value=tenant)
    mock_uow.tenants.update = AsyncMock(return_value=tenant)
    return mock_uow


@pytest.mark.asyncio
async def test_list_without_customer_is_empty(wired_uow, gateway, make_context):
    result = await ListPaymentMethodsUseCase(wired_uow, gateway).execute(make_context())

    assert result.value.payment_methods == []


@pytest.mark.asyncio
async def test_store_creates_customer_once(wired_uow, gateway, make_context, tenant):
    use_case = StorePaymentMethodUseCase(wired_uow, gateway)

    first = await use_case.execute(
        make_context(), StorePaymentMethodCommand(card_number="4111 1111 1111 1111")
    )
    customer_id = tenant.gateway_customer_id
    second = await use_case.execute(
        make_context(), StorePaymentMethodCommand(card_number="5555555555554444")
    )

    assert first.value.last4 == "1111"
    assert first.value.is_default
    assert not second.value.is_default
    assert tenant.gateway_customer_id == customer_id
    wired_uow.tenants.update.assert_called_once()

    listed = await ListPaymentMethodsUseCase(wired_uow, gateway).execute(make_context())
    assert len(listed.value.payment_methods) == 2


@pytest.mark.asyncio
async def test_store_requires_card_or_method(wired_uow, gateway, make_context):
    result = await StorePaymentMethodUseCase(wired_uow, gateway).execute(
        make_context(), StorePaymentMethodCommand()
    )

    assert result.error.code == "PAYMENT_METHOD_REQUIRED"


@pytest.mark.asyncio
async def test_store_rejects_malformed_card(wired_uow, gateway, make_context):
    result = await StorePaymentMethodUseCase(wired_uow, gateway).execute(
        make_context(), StorePaymentMethodCommand(card_number="4111-abc")
    )

    assert result.error.code == "VALIDATION_FAILED"
    wired_uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_set_default_and_remove(wired_uow, gateway, make_context):
    store = StorePaymentMethodUseCase(wired_uow, gateway)
    await store.execute(make_context(), StorePaymentMethodCommand(card_number=CARD_SUCCESS))
    second = await store.execute(
        make_context(), StorePaymentMethodCommand(card_number="5555555555554444")
    )

    made_default = await SetDefaultPaymentMethodUseCase(wired_uow, gateway).execute(
        make_context(), second.value.id
    )
    assert made_default.value.is_default

    removed = await RemovePaymentMethodUseCase(wired_uow, gateway).execute(
        make_context(), second.value.id
    )
    assert removed.value == {"id": second.value.id, "removed": True}

    listed = await ListPaymentMethodsUseCase(wired_uow, gateway).execute(make_context())
    assert [m.last4 for m in listed.value.payment_methods] == ["1111"]


@pytest.mark.asyncio
async def test_unknown_method(wired_uow, gateway, make_context, tenant):
    tenant.gateway_customer_id = await gateway.create_customer(tenant)

    result = await RemovePaymentMethodUseCase(wired_uow, gateway).execute(
        make_context(), "pm_missing"
    )

    assert result.error.code == "PAYMENT_METHOD_NOT_FOUND"


@pytest.mark.asyncio
async def test_set_default_without_customer(wired_uow, gateway, make_context):
    result = await SetDefaultPaymentMethodUseCase(wired_uow, gateway).execute(
        make_context(), "pm_missing"
    )

    assert result.error.code == "PAYMENT_METHOD_NOT_FOUND"
