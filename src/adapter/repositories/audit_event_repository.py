import base64
import binascii
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.audit_event_repository import IAuditEventRepository, InvalidCursor
from src.domain.entities import AuditEvent


def encode_cursor(event: AuditEvent) -> str:
    raw = f"{event.created_at.isoformat()}|{event.id}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> Tuple[datetime, UUID]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        created_at, event_id = raw.split("|", 1)
        return datetime.fromisoformat(created_at), UUID(event_id)
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidCursor(f"Invalid cursor: {cursor}") from e


class AuditEventRepository(IAuditEventRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        self.session.add(audit_event)
        await self.session.flush()
        return audit_event

    async def list_for_tenant(
        self, tenant_id: UUID, limit: int = 50, cursor: Optional[str] = None
    ) -> Tuple[List[AuditEvent], Optional[str]]:
        """
        Keyset pagination on (created_at, id), so events written in the
        same instant are neither skipped nor repeated across pages.
        """
        stmt = select(AuditEvent).where(AuditEvent.tenant_id == tenant_id)

        if cursor:
            created_at, event_id = decode_cursor(cursor)
            stmt = stmt.where(
                or_(
                    AuditEvent.created_at < created_at,
                    and_(AuditEvent.created_at == created_at, AuditEvent.id < event_id),
                )
            )

        stmt = stmt.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(limit + 1)
        result = await self.session.exec(stmt)
        events = list(result.all())

        if len(events) <= limit:
            return events, None
        events = events[:limit]
        return events, encode_cursor(events[-1])
