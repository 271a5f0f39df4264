from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.domain.entities import Subscription


class ISubscriptionRepository(ABC):
    """Subscription repository interface - central database"""

    @abstractmethod
    async def get_by_tenant_id(self, tenant_id: UUID) -> Optional[Subscription]:
        """Get the (single) subscription of a tenant"""
        pass

    @abstractmethod
    async def create(self, subscription: Subscription) -> Subscription:
        """Raises IntegrityError when the tenant already has a subscription"""
        pass

    @abstractmethod
    async def update(self, subscription: Subscription) -> Subscription:
        pass
