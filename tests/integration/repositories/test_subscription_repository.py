"""
Integration tests for SubscriptionRepository against the central database.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from src.adapter.repositories.subscription_repository import SubscriptionRepository
from src.adapter.repositories.tenant_repository import TenantRepository
from src.domain.entities import Subscription
from src.domain.entities.enums import PlanTier


@pytest.mark.asyncio
async def test_tenant_has_at_most_one_subscription(session_factory):
    async with session_factory() as session:
        tenant = await TenantRepository(session).get_by_slug("acme")
        repository = SubscriptionRepository(session)

        tenant_id = tenant.id
        existing = await repository.get_by_tenant_id(tenant_id)
        existing_id = existing.id

        with pytest.raises(IntegrityError):
            await repository.create(
                Subscription(tenant_id=tenant_id, plan=PlanTier.enterprise, user_limit=10)
            )
        await session.rollback()

    async with session_factory() as session:
        subscription = await SubscriptionRepository(session).get_by_tenant_id(tenant_id)
        assert subscription.id == existing_id
        assert subscription.user_limit == 5


@pytest.mark.asyncio
async def test_subscription_for_new_tenant_is_created(session_factory):
    async with session_factory() as session:
        beta = await TenantRepository(session).get_by_slug("beta")
        repository = SubscriptionRepository(session)
        current = await repository.get_by_tenant_id(beta.id)
        await session.delete(current)
        await session.flush()

        created = await repository.create(
            Subscription(tenant_id=beta.id, plan=PlanTier.team, user_limit=3)
        )
        await session.commit()

    async with session_factory() as session:
        subscription = await SubscriptionRepository(session).get_by_tenant_id(beta.id)
        assert subscription.id == created.id
        assert subscription.plan == PlanTier.team
