from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.access_token_repository import AccessTokenRepository
from src.adapter.repositories.audit_event_repository import AuditEventRepository
from src.adapter.repositories.payment_repository import PaymentRepository
from src.adapter.repositories.subscription_repository import SubscriptionRepository
from src.adapter.repositories.tenant_repository import TenantRepository
from src.adapter.repositories.user_repository import UserRepository
from src.app.services.unit_of_work import TenantUnitOfWork, UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern (central database)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        # Initialize all repositories with the session
        self.tenants = TenantRepository(self.session)
        self.subscriptions = SubscriptionRepository(self.session)
        self.payments = PaymentRepository(self.session)
        self.audit_events = AuditEventRepository(self.session)
        self.users = UserRepository(self.session)
        self.access_tokens = AccessTokenRepository(self.session)
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()


class SqlAlchemyTenantUnitOfWork(TenantUnitOfWork):
    """Unit of work over a session bound to a tenant database engine"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        self.users = UserRepository(self.session)
        self.access_tokens = AccessTokenRepository(self.session)
        return self

    async def __aexit__(self, *args):
        await self.rollback()
        await self.session.close()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
