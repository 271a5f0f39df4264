"""
Helpers shared by the billing use cases.
"""

from typing import Optional
from uuid import UUID

from src.app.services.payment_gateway import IPaymentGateway
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.domain import errors
from src.domain.entities import AuditEvent, Subscription, Tenant
from src.domain.values import LicenseSummary, PlanCatalog
from src.libs.result import Error, Result, Return


async def count_active_users(context: TenantContext) -> int:
    """Seats in use, counted in the tenant's own database."""
    async with context.unit_of_work() as tenant_uow:
        return await tenant_uow.users.count_active()


async def load_tenant_and_subscription(
    uow: UnitOfWork, tenant_id: UUID
) -> Result[tuple]:
    tenant = await uow.tenants.get_by_id(tenant_id)
    if tenant is None:
        return Return.err(Error(errors.TENANT_NOT_FOUND, "Tenant not found"))

    subscription = await uow.subscriptions.get_by_tenant_id(tenant_id)
    if subscription is None:
        return Return.err(
            Error(errors.SUBSCRIPTION_NOT_FOUND, "Tenant has no subscription")
        )
    return Return.ok((tenant, subscription))


async def ensure_gateway_customer(
    uow: UnitOfWork, gateway: IPaymentGateway, tenant: Tenant
) -> str:
    if not tenant.gateway_customer_id:
        tenant.gateway_customer_id = await gateway.create_customer(tenant)
        await uow.tenants.update(tenant)
    return tenant.gateway_customer_id


async def record_audit(
    uow: UnitOfWork,
    tenant_id: UUID,
    action: str,
    metadata: dict,
    user_id: Optional[int] = None,
) -> None:
    await uow.audit_events.create(
        AuditEvent(
            tenant_id=tenant_id,
            user_id=user_id,
            action=action,
            event_metadata=metadata,
        )
    )


def license_summary(
    subscription: Subscription, active_users: int, catalog: PlanCatalog
) -> LicenseSummary:
    purchased = None if subscription.is_trial else subscription.user_limit
    return LicenseSummary(
        purchased=purchased,
        used=active_users,
        price_per_seat_cents=catalog.price_per_user(subscription.plan),
        trial_ends_at=subscription.trial_ends_at,
    )
