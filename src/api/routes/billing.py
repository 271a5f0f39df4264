"""
Billing API Routes

All routes run against the routed tenant. Reads and the upgrade quote are
open to any authenticated member; everything that changes the
subscription or starts a payment requires an owner or admin.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.api.utils.responses import SuccessResponse, ok, raise_for_error
from src.app.services.billing_rules import BillingRules
from src.app.services.payment_gateway import IPaymentGateway
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.authenticator import AuthenticatedUser
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing import (
    CancelCheckoutUseCase,
    CancelScheduledDowngradeUseCase,
    ChangeSubscriptionStatusUseCase,
    ConfirmCheckoutUseCase,
    GetBillingHistoryUseCase,
    GetBillingSummaryUseCase,
    GetLicenseSummaryUseCase,
    QuoteUpgradeUseCase,
    ScheduleDowngradeUseCase,
    StartCheckoutUseCase,
    ToggleAddonUseCase,
)
from src.app.use_cases.billing.dtos import (
    BillingHistoryResponse,
    BillingSummaryResponse,
    CancelDowngradeResponse,
    CheckoutCancelCommand,
    CheckoutConfirmCommand,
    CheckoutConfirmResponse,
    CheckoutStartCommand,
    CheckoutStartResponse,
    LicenseSummaryResponse,
    PaymentView,
    QuoteResponse,
    ScheduleDowngradeCommand,
    ScheduleDowngradeResponse,
    StatusChangeResponse,
    ToggleAddonCommand,
    ToggleAddonResponse,
    UpgradeQuoteCommand,
)
from src.depends import (
    get_billing_rules,
    get_current_user,
    get_payment_gateway,
    get_unit_of_work,
    require_billing_admin,
    require_tenant_context,
)
from src.libs.result import Result

router = APIRouter(prefix="/billing", tags=["Billing"])


def _unwrap(result: Result):
    if result.is_err():
        raise_for_error(result.error)
    return result.value


@router.get("/summary", response_model=SuccessResponse[BillingSummaryResponse])
async def billing_summary(
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    rules: BillingRules = Depends(get_billing_rules),
):
    """Subscription, license usage, features and the next renewal amount."""
    return ok(_unwrap(await GetBillingSummaryUseCase(uow, rules).execute(context)))


@router.get("/licenses", response_model=SuccessResponse[LicenseSummaryResponse])
async def license_summary(
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    rules: BillingRules = Depends(get_billing_rules),
):
    return ok(_unwrap(await GetLicenseSummaryUseCase(uow, rules).execute(context)))


@router.get("/history", response_model=SuccessResponse[BillingHistoryResponse])
async def billing_history(
    limit: int = Query(50, ge=1, le=100),
    cursor: Optional[str] = Query(None),
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Billing audit trail, newest first."""
    result = await GetBillingHistoryUseCase(uow).execute(context, limit=limit, cursor=cursor)
    return ok(_unwrap(result))


@router.post("/upgrade-plan", response_model=SuccessResponse[QuoteResponse])
async def quote_upgrade(
    command: UpgradeQuoteCommand,
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    rules: BillingRules = Depends(get_billing_rules),
):
    """
    Upgrade quote

    Validates the requested plan and seat count and prices it. Nothing is
    charged or changed; use checkout/start to buy.

    Raises:
        - 422: INVALID_PLAN_TRANSITION, LICENSE_LIMIT_EXCEEDED, VALIDATION_FAILED
    """
    return ok(_unwrap(await QuoteUpgradeUseCase(uow, rules).execute(context, command)))


@router.post(
    "/checkout/start",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[CheckoutStartResponse],
)
async def start_checkout(
    command: CheckoutStartCommand,
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    gateway: IPaymentGateway = Depends(get_payment_gateway),
    rules: BillingRules = Depends(get_billing_rules),
):
    """
    Start checkout

    Opens a gateway payment intent and stores a pending payment snapshot.
    The subscription changes only when the payment is confirmed.
    """
    use_case = StartCheckoutUseCase(uow, gateway, rules)
    result = await use_case.execute(context, command, user_id=user.id)
    return ok(_unwrap(result), "Checkout started")


@router.post("/checkout/confirm", response_model=SuccessResponse[CheckoutConfirmResponse])
async def confirm_checkout(
    command: CheckoutConfirmCommand,
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    gateway: IPaymentGateway = Depends(get_payment_gateway),
    rules: BillingRules = Depends(get_billing_rules),
):
    """
    Confirm checkout

    Confirming an already completed payment returns it unchanged.

    Raises:
        - 402 Payment Required: PAYMENT_DECLINED
        - 404 Not Found: PAYMENT_NOT_FOUND
        - 409 Conflict: CONCURRENT_MODIFICATION
    """
    use_case = ConfirmCheckoutUseCase(uow, gateway, rules)
    result = _unwrap(await use_case.execute(context, command, user_id=user.id))
    message = "Subscription updated" if result.applied else None
    return ok(result, message)


@router.post("/checkout/cancel", response_model=SuccessResponse[PaymentView])
async def cancel_checkout(
    command: CheckoutCancelCommand,
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    rules: BillingRules = Depends(get_billing_rules),
):
    use_case = CancelCheckoutUseCase(uow, rules)
    return ok(_unwrap(await use_case.execute(context, command, user_id=user.id)))


@router.post("/schedule-downgrade", response_model=SuccessResponse[ScheduleDowngradeResponse])
async def schedule_downgrade(
    command: ScheduleDowngradeCommand,
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    rules: BillingRules = Depends(get_billing_rules),
):
    """Record a downgrade for the next billing cycle. Nothing is charged."""
    use_case = ScheduleDowngradeUseCase(uow, rules)
    result = _unwrap(await use_case.execute(context, command, user_id=user.id))
    return ok(result, result.message)


@router.post(
    "/cancel-scheduled-downgrade", response_model=SuccessResponse[CancelDowngradeResponse]
)
async def cancel_scheduled_downgrade(
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    rules: BillingRules = Depends(get_billing_rules),
):
    use_case = CancelScheduledDowngradeUseCase(uow, rules)
    return ok(_unwrap(await use_case.execute(context, user_id=user.id)))


@router.post("/toggle-addon", response_model=SuccessResponse[ToggleAddonResponse])
async def toggle_addon(
    command: ToggleAddonCommand,
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    rules: BillingRules = Depends(get_billing_rules),
):
    use_case = ToggleAddonUseCase(uow, rules)
    return ok(_unwrap(await use_case.execute(context, command, user_id=user.id)))


@router.post(
    "/subscription/{action}", response_model=SuccessResponse[StatusChangeResponse]
)
async def change_subscription_status(
    action: str,
    context: TenantContext = Depends(require_tenant_context),
    user: AuthenticatedUser = Depends(require_billing_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
    rules: BillingRules = Depends(get_billing_rules),
):
    """Pause, resume or cancel the subscription."""
    use_case = ChangeSubscriptionStatusUseCase(uow, rules)
    return ok(_unwrap(await use_case.execute(context, action, user_id=user.id)))
