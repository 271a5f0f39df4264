"""
Use Case: Restore Tenant

Admin endpoint to restore a suspended tenant after payment.
Requests for the tenant are routed again from the next request on.
"""

from pydantic import BaseModel

from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.billing.common import record_audit
from src.domain import errors
from src.domain.base import utcnow
from src.domain.entities.enums import TenantStatus
from src.libs.result import Error, Result, Return


class RestoreTenantResponse(BaseModel):
    """Response DTO for RestoreTenantUseCase"""

    slug: str
    status: str


class RestoreTenantUseCase:
    """
    Restore a suspended tenant.

    Business Logic:
    1. Validate tenant exists
    2. Update tenant status to active
    3. Create audit event

    Idempotent: Restoring an already-active tenant succeeds
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, slug: str) -> Result[RestoreTenantResponse]:
        async with self.uow:
            # 1. Get tenant
            tenant = await self.uow.tenants.get_by_slug(slug)
            if not tenant:
                return Return.err(Error(errors.TENANT_NOT_FOUND, "Tenant not found"))

            if tenant.status == TenantStatus.deactivated:
                return Return.err(
                    Error(errors.VALIDATION_FAILED, "Deactivated tenants cannot be restored")
                )

            # 2. Update tenant status to active
            tenant.status = TenantStatus.active
            await self.uow.tenants.update(tenant)

            # 3. Create audit event
            await record_audit(
                self.uow,
                tenant.id,
                "tenant_restored",
                {"restored_at": utcnow().isoformat()},
            )

            await self.uow.commit()

            return Return.ok(RestoreTenantResponse(slug=tenant.slug, status="active"))
