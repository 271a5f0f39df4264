"""
Per-request tenant context.

A ``TenantContext`` is built once per request by the connection router
and passed explicitly to whatever needs the tenant's database. It holds
plain values only, so it stays valid after the central session that
produced it is closed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import UUID

from src.app.services.unit_of_work import TenantUnitOfWork, UnitOfWork
from src.domain.entities.enums import PlanTier
from src.domain.values import TenantIdentifier
from src.libs.result import Result


class ITenantConnection(ABC):
    """Handle on one tenant database"""

    database: str

    @abstractmethod
    def unit_of_work(self) -> TenantUnitOfWork:
        """Open a fresh unit of work on the tenant database"""
        pass


@dataclass(frozen=True)
class TenantContext:
    tenant_id: UUID
    slug: str
    name: str
    plan: PlanTier
    connection: ITenantConnection

    def unit_of_work(self) -> TenantUnitOfWork:
        return self.connection.unit_of_work()

    def __repr__(self) -> str:
        return f"TenantContext(slug={self.slug!r}, database={self.connection.database!r})"


class IConnectionRouter(ABC):
    """Turns a tenant identifier into a routed TenantContext"""

    @abstractmethod
    async def route(self, uow: UnitOfWork, identifier: TenantIdentifier) -> Result[TenantContext]:
        pass
