from typing import Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.subscription_repository import ISubscriptionRepository
from src.domain.entities import Subscription


class SubscriptionRepository(ISubscriptionRepository):
    """Subscription repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_tenant_id(self, tenant_id: UUID) -> Optional[Subscription]:
        stmt = select(Subscription).where(Subscription.tenant_id == tenant_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create(self, subscription: Subscription) -> Subscription:
        self.session.add(subscription)
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription

    async def update(self, subscription: Subscription) -> Subscription:
        self.session.add(subscription)
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription
