from typing import Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.tenant_repository import ITenantRepository
from src.domain.entities import Tenant


class TenantRepository(ITenantRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, tenant_id: UUID) -> Optional[Tenant]:
        return await self.session.get(Tenant, tenant_id)

    async def get_by_slug(self, slug: str) -> Optional[Tenant]:
        result = await self.session.exec(select(Tenant).where(Tenant.slug == slug))
        return result.one_or_none()

    async def update(self, tenant: Tenant) -> Tenant:
        """Stage changes to plan, status or gateway customer; the caller commits."""
        self.session.add(tenant)
        await self.session.flush()
        return tenant
