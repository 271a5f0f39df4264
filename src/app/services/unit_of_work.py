from abc import ABC, abstractmethod

from src.app.repositories.access_token_repository import IAccessTokenRepository
from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.app.repositories.payment_repository import IPaymentRepository
from src.app.repositories.subscription_repository import ISubscriptionRepository
from src.app.repositories.tenant_repository import ITenantRepository
from src.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork for the central database"""

    # Repository properties (initialized in __aenter__)
    tenants: ITenantRepository
    subscriptions: ISubscriptionRepository
    payments: IPaymentRepository
    audit_events: IAuditEventRepository
    users: IUserRepository
    access_tokens: IAccessTokenRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class TenantUnitOfWork(ABC):
    """Abstract UnitOfWork for one tenant's own database"""

    users: IUserRepository
    access_tokens: IAccessTokenRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
