"""
Use Case: Suspend Tenant

Admin endpoint to suspend a tenant (e.g. for non-payment). A suspended
tenant can no longer be routed to, so every tenant-scoped request fails
until it is restored.
"""

from pydantic import BaseModel

from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.billing.common import record_audit
from src.domain import errors
from src.domain.base import utcnow
from src.domain.entities.enums import TenantStatus
from src.libs.result import Error, Result, Return


class SuspendTenantResponse(BaseModel):
    """Response DTO for SuspendTenantUseCase"""

    slug: str
    status: str


class SuspendTenantUseCase:
    """
    Suspend a tenant.

    Business Logic:
    1. Validate tenant exists
    2. Update tenant status to suspended
    3. Create audit event

    Idempotent: Suspending an already-suspended tenant succeeds
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, slug: str) -> Result[SuspendTenantResponse]:
        async with self.uow:
            # 1. Get tenant
            tenant = await self.uow.tenants.get_by_slug(slug)
            if not tenant:
                return Return.err(Error(errors.TENANT_NOT_FOUND, "Tenant not found"))

            if tenant.status == TenantStatus.deactivated:
                return Return.err(
                    Error(errors.VALIDATION_FAILED, "Deactivated tenants cannot be suspended")
                )

            # 2. Update tenant status to suspended
            previous = tenant.status
            tenant.status = TenantStatus.suspended
            await self.uow.tenants.update(tenant)

            # 3. Create audit event
            await record_audit(
                self.uow,
                tenant.id,
                "tenant_suspended",
                {
                    "previous_status": previous.value,
                    "suspended_at": utcnow().isoformat(),
                },
            )

            await self.uow.commit()

            return Return.ok(SuspendTenantResponse(slug=tenant.slug, status="suspended"))
