import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from config import ApplicationConfig
from src.app.services.billing_rules import BillingRules
from src.app.tenancy.context import TenantContext
from src.domain.entities import Subscription, Tenant
from src.domain.entities.enums import PlanTier, SubscriptionStatus

NOW = datetime(2026, 3, 10, 12, 0, 0)


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def rules():
    return BillingRules.from_config(ApplicationConfig, clock=lambda: NOW)


@pytest.fixture
def tenant():
    return Tenant(id=uuid4(), slug="acme", name="Acme Corp", plan=PlanTier.team, db_name="acme.db")


@pytest.fixture
def make_context(tenant):
    """TenantContext whose tenant database reports ``active_users`` active users."""

    def _make(active_users: int = 1):
        tenant_uow = MagicMock()
        tenant_uow.__aenter__ = AsyncMock(return_value=tenant_uow)
        tenant_uow.__aexit__ = AsyncMock(return_value=False)
        tenant_uow.commit = AsyncMock()
        tenant_uow.users.count_active = AsyncMock(return_value=active_users)

        connection = MagicMock()
        connection.database = tenant.db_name
        connection.unit_of_work = MagicMock(return_value=tenant_uow)
        return TenantContext(
            tenant_id=tenant.id,
            slug=tenant.slug,
            name=tenant.name,
            plan=tenant.plan,
            connection=connection,
        )

    return _make


def make_subscription(tenant_id=None, **overrides) -> Subscription:
    values = dict(
        id=uuid4(),
        tenant_id=tenant_id or uuid4(),
        plan=PlanTier.team,
        user_limit=5,
        addons=[],
        status=SubscriptionStatus.active,
        next_renewal_at=datetime(2026, 4, 1),
        billing_period_started_at=datetime(2026, 3, 1),
        billing_period_ends_at=datetime(2026, 4, 1),
    )
    values.update(overrides)
    return Subscription(**values)


@pytest.fixture
def subscription_factory(tenant):
    def _make(**overrides):
        return make_subscription(tenant.id, **overrides)

    return _make


@pytest.fixture
def central_uow(mock_uow, tenant):
    """mock_uow wired with the tenant and repository defaults billing use cases need."""

    def _wire(subscription):
        mock_uow.tenants.get_by_id = AsyncMock(return_value=tenant)
        mock_uow.tenants.get_by_slug = AsyncMock(return_value=tenant)
        mock_uow.tenants.update = AsyncMock(return_value=tenant)
        mock_uow.subscriptions.get_by_tenant_id = AsyncMock(return_value=subscription)
        mock_uow.subscriptions.update = AsyncMock(return_value=subscription)
        mock_uow.payments.create = AsyncMock(side_effect=lambda payment: payment)
        mock_uow.payments.compare_and_set_status = AsyncMock(return_value=True)
        mock_uow.payments.list_by_tenant = AsyncMock(return_value=[])
        mock_uow.audit_events.create = AsyncMock()
        return mock_uow

    return _wire
