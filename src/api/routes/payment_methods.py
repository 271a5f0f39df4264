from fastapi import APIRouter, Depends, status

from src.api.utils.responses import SuccessResponse, ok, raise_for_error
from src.app.services.payment_gateway import IPaymentGateway
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.authenticator import AuthenticatedUser
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing import (
    ListPaymentMethodsUseCase,
    RemovePaymentMethodUseCase,
    SetDefaultPaymentMethodUseCase,
    StorePaymentMethodUseCase,
)
from src.app.use_cases.billing.dtos import (
    PaymentMethodListResponse,
    PaymentMethodView,
    StorePaymentMethodCommand,
)
from src.depends import (
    get_payment_gateway,
    get_unit_of_work,
    require_billing_admin,
    require_tenant_context,
)

router = APIRouter(prefix="/billing/payment-methods", tags=["Payment Methods"])


@router.get("", response_model=SuccessResponse[PaymentMethodListResponse])
async def list_payment_methods(
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    gateway: IPaymentGateway = Depends(get_payment_gateway),
):
    result = await ListPaymentMethodsUseCase(uow, gateway).execute(context)
    if result.is_err():
        raise_for_error(result.error)
    return ok(result.value)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[PaymentMethodView],
)
async def store_payment_method(
    command: StorePaymentMethodCommand,
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    gateway: IPaymentGateway = Depends(get_payment_gateway),
):
    """
    Store a card (simulated gateway) or attach a gateway payment method id.

    The first stored method becomes the default used for renewals.
    """
    result = await StorePaymentMethodUseCase(uow, gateway).execute(context, command)
    if result.is_err():
        raise_for_error(result.error)
    return ok(result.value, "Payment method stored")


@router.post("/{payment_method_id}/default", response_model=SuccessResponse[PaymentMethodView])
async def set_default_payment_method(
    payment_method_id: str,
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    gateway: IPaymentGateway = Depends(get_payment_gateway),
):
    result = await SetDefaultPaymentMethodUseCase(uow, gateway).execute(
        context, payment_method_id
    )
    if result.is_err():
        raise_for_error(result.error)
    return ok(result.value)


@router.delete("/{payment_method_id}")
async def remove_payment_method(
    payment_method_id: str,
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    gateway: IPaymentGateway = Depends(get_payment_gateway),
):
    result = await RemovePaymentMethodUseCase(uow, gateway).execute(
        context, payment_method_id
    )
    if result.is_err():
        raise_for_error(result.error)
    return ok(result.value, "Payment method removed")
