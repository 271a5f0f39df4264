"""
Get Billing History Use Case

Billing audit trail of the routed tenant, newest first, with cursor
pagination.
"""

from typing import Optional

from src.app.repositories.audit_event_repository import InvalidCursor
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.context import TenantContext
from src.app.use_cases.billing.dtos import BillingHistoryResponse
from src.domain import errors
from src.libs.result import Error, Result, Return


class GetBillingHistoryUseCase:
    """
    Business Rules:
    - Results are tenant-scoped (only events for the routed tenant)
    - Results ordered by newest first
    - A cursor the service did not issue is a validation error
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self,
        context: TenantContext,
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> Result[BillingHistoryResponse]:
        async with self.uow:
            try:
                events, next_cursor = await self.uow.audit_events.list_for_tenant(
                    context.tenant_id, limit=limit, cursor=cursor
                )
            except InvalidCursor as e:
                return Return.err(Error(errors.VALIDATION_FAILED, str(e)))

            events_list = [
                {
                    "action": event.action,
                    "user_id": event.user_id,
                    "timestamp": event.created_at.isoformat() + "Z",
                    "metadata": event.event_metadata or {},
                }
                for event in events
            ]
            return Return.ok(BillingHistoryResponse(events=events_list, next_cursor=next_cursor))
