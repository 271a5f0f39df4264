from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from uuid import UUID

from src.domain.entities import AuditEvent


class InvalidCursor(ValueError):
    """History cursor that was not issued by this service"""


class IAuditEventRepository(ABC):
    """Append-only billing history - central database"""

    @abstractmethod
    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        pass

    @abstractmethod
    async def list_for_tenant(
        self, tenant_id: UUID, limit: int = 50, cursor: Optional[str] = None
    ) -> Tuple[List[AuditEvent], Optional[str]]:
        """
        Newest first. Returns (events, next_cursor); next_cursor is None on
        the last page.

        Raises:
            InvalidCursor: cursor cannot be decoded
        """
        pass
