from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from src.domain.entities import PaymentSnapshot
from src.domain.entities.enums import PaymentStatus


class IPaymentRepository(ABC):
    """Payment snapshot repository interface - central database"""

    @abstractmethod
    async def get_by_id(self, payment_id: UUID) -> Optional[PaymentSnapshot]:
        pass

    @abstractmethod
    async def create(self, payment: PaymentSnapshot) -> PaymentSnapshot:
        pass

    @abstractmethod
    async def update(self, payment: PaymentSnapshot) -> PaymentSnapshot:
        pass

    @abstractmethod
    async def compare_and_set_status(
        self,
        payment_id: UUID,
        expected: PaymentStatus,
        values: dict,
    ) -> bool:
        """
        Write ``values`` only if the row still has status ``expected``.

        Returns:
            True when exactly one row was updated, False when another
            writer changed the status first
        """
        pass

    @abstractmethod
    async def list_by_tenant(self, tenant_id: UUID, limit: int = 50) -> List[PaymentSnapshot]:
        """Most recent payments first"""
        pass
