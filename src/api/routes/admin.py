"""
Admin API Routes - Tenant Administration Endpoints

Used by the billing scheduler and support tooling. Authentication is via
Admin API Key, not tenant tokens, and no tenant identifier is resolved:
the tenant is named by the path.
"""

from fastapi import APIRouter, Depends, status

from src.adapter.tenancy.connection_router import TenantEngineRegistry
from src.api.utils.admin_auth import verify_admin_api_key
from src.api.utils.responses import SuccessResponse, ok, raise_for_error
from src.app.services.billing_rules import BillingRules
from src.app.services.payment_gateway import IPaymentGateway
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.admin import (
    RestoreTenantResponse,
    RestoreTenantUseCase,
    SuspendTenantResponse,
    SuspendTenantUseCase,
)
from src.app.use_cases.billing import ProcessRenewalUseCase
from src.app.use_cases.billing.dtos import RenewalResponse
from src.depends import (
    get_billing_rules,
    get_engine_registry,
    get_payment_gateway,
    get_unit_of_work,
)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_api_key)],
)


@router.post(
    "/tenants/{slug}/suspend",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[SuspendTenantResponse],
)
async def suspend_tenant(
    slug: str,
    uow: UnitOfWork = Depends(get_unit_of_work),
    registry: TenantEngineRegistry = Depends(get_engine_registry),
):
    """
    Suspend Tenant

    Blocks routing to the tenant and drops its pooled connections.

    Requires: X-Admin-API-Key header

    Raises:
        - 401 Unauthorized: Missing or invalid admin API key
        - 404 Not Found: TENANT_NOT_FOUND
        - 422 Unprocessable Entity: tenant is deactivated
    """
    result = await SuspendTenantUseCase(uow).execute(slug)
    if result.is_err():
        raise_for_error(result.error)

    await registry.purge(slug)
    return ok(result.value, "Tenant suspended")


@router.post(
    "/tenants/{slug}/restore",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[RestoreTenantResponse],
)
async def restore_tenant(slug: str, uow: UnitOfWork = Depends(get_unit_of_work)):
    """
    Restore Tenant

    Makes a suspended tenant routable again.

    Requires: X-Admin-API-Key header
    """
    result = await RestoreTenantUseCase(uow).execute(slug)
    if result.is_err():
        raise_for_error(result.error)
    return ok(result.value, "Tenant restored")


@router.post(
    "/tenants/{slug}/renew",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[RenewalResponse],
)
async def renew_subscription(
    slug: str,
    uow: UnitOfWork = Depends(get_unit_of_work),
    gateway: IPaymentGateway = Depends(get_payment_gateway),
    rules: BillingRules = Depends(get_billing_rules),
):
    """
    Run one renewal for the tenant's subscription

    A declined renewal is a successful call with outcome "failed"; the
    subscription is then past_due until a later renewal succeeds or the
    grace period ends.

    Requires: X-Admin-API-Key header
    """
    result = await ProcessRenewalUseCase(uow, gateway, rules).execute(slug)
    if result.is_err():
        raise_for_error(result.error)
    return ok(result.value)
