from typing import List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.payment_repository import IPaymentRepository
from src.domain.entities import PaymentSnapshot
from src.domain.entities.enums import PaymentStatus


class PaymentRepository(IPaymentRepository):
    """Payment snapshot repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, payment_id: UUID) -> Optional[PaymentSnapshot]:
        stmt = select(PaymentSnapshot).where(PaymentSnapshot.id == payment_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create(self, payment: PaymentSnapshot) -> PaymentSnapshot:
        self.session.add(payment)
        await self.session.flush()
        await self.session.refresh(payment)
        return payment

    async def update(self, payment: PaymentSnapshot) -> PaymentSnapshot:
        self.session.add(payment)
        await self.session.flush()
        await self.session.refresh(payment)
        return payment

    async def compare_and_set_status(
        self,
        payment_id: UUID,
        expected: PaymentStatus,
        values: dict,
    ) -> bool:
        stmt = (
            update(PaymentSnapshot)
            .where(PaymentSnapshot.id == payment_id)
            .where(PaymentSnapshot.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def list_by_tenant(self, tenant_id: UUID, limit: int = 50) -> List[PaymentSnapshot]:
        stmt = (
            select(PaymentSnapshot)
            .where(PaymentSnapshot.tenant_id == tenant_id)
            .order_by(PaymentSnapshot.created_at.desc())
            .limit(limit)
        )
        result = await self.session.exec(stmt)
        return list(result.all())
