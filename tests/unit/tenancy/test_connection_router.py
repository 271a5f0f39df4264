"""
Unit tests for ConnectionRouter and TenantEngineRegistry
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from sqlalchemy.engine import URL

from config import ApplicationConfig
from src.adapter.tenancy.connection_router import (
    ConnectionRouter,
    TenantEngineRegistry,
    build_tenant_url,
)
from src.domain.entities import Tenant
from src.domain.entities.enums import PlanTier, TenantStatus
from src.domain.values import TenantIdentifier


def _engine_factory():
    def factory(url, **kwargs):
        engine = MagicMock()
        engine.url = url
        engine.dispose = AsyncMock()
        return engine

    return MagicMock(side_effect=factory)


@pytest.fixture
def registry():
    return TenantEngineRegistry(engine_factory=_engine_factory())


@pytest.fixture
def router(registry):
    return ConnectionRouter(registry, ApplicationConfig)


def _identifier(slug="acme"):
    return TenantIdentifier(slug=slug, source="header")


@pytest.mark.asyncio
async def test_route_returns_context_for_active_tenant(mock_uow, router, registry):
    tenant = Tenant(id=uuid4(), slug="acme", name="Acme", plan=PlanTier.team, db_name="acme.db")
    mock_uow.tenants.get_by_slug = AsyncMock(return_value=tenant)

    result = await router.route(mock_uow, _identifier())

    assert result.is_ok()
    context = result.value
    assert context.tenant_id == tenant.id
    assert context.slug == "acme"
    assert context.plan == PlanTier.team
    assert context.connection.database == "acme.db"
    assert "acme" in registry


@pytest.mark.asyncio
async def test_unknown_tenant(mock_uow, router):
    mock_uow.tenants.get_by_slug = AsyncMock(return_value=None)

    result = await router.route(mock_uow, _identifier("nobody"))

    assert result.error.code == "TENANT_NOT_FOUND"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [TenantStatus.suspended, TenantStatus.deactivated])
async def test_suspended_tenant_is_not_routed(mock_uow, router, registry, status):
    tenant = Tenant(id=uuid4(), slug="acme", name="Acme", status=status, db_name="acme.db")
    mock_uow.tenants.get_by_slug = AsyncMock(return_value=tenant)

    result = await router.route(mock_uow, _identifier())

    assert result.error.code == "TENANT_SUSPENDED"
    assert "acme" not in registry


@pytest.mark.asyncio
async def test_tenant_without_database(mock_uow, router):
    tenant = Tenant(id=uuid4(), slug="acme", name="Acme", db_name=None)
    mock_uow.tenants.get_by_slug = AsyncMock(return_value=tenant)

    result = await router.route(mock_uow, _identifier())

    assert result.error.code == "TENANT_DATABASE_NOT_CONFIGURED"


@pytest.mark.asyncio
async def test_registry_reuses_engine_for_same_url(registry):
    url = URL.create("sqlite+aiosqlite", database="acme.db")

    first = await registry.get("acme", url)
    second = await registry.get("acme", url)

    assert first is second
    assert registry.engine_factory.call_count == 1


@pytest.mark.asyncio
async def test_registry_disposes_stale_engine_when_coordinates_change(registry):
    old = await registry.get("acme", URL.create("sqlite+aiosqlite", database="acme.db"))
    new = await registry.get("acme", URL.create("sqlite+aiosqlite", database="acme-moved.db"))

    assert new is not old
    old.dispose.assert_awaited_once()
    new.dispose.assert_not_awaited()


@pytest.mark.asyncio
async def test_purge_disposes_engine(registry):
    engine = await registry.get("acme", URL.create("sqlite+aiosqlite", database="acme.db"))

    await registry.purge("acme")

    engine.dispose.assert_awaited_once()
    assert "acme" not in registry


def test_build_tenant_url_falls_back_to_defaults():
    defaults = MagicMock(
        TENANT_DB_DRIVER="postgresql+asyncpg",
        TENANT_DB_HOST="db.internal",
        TENANT_DB_PORT=5432,
        TENANT_DB_USERNAME="app",
        TENANT_DB_PASSWORD="secret",
    )
    tenant = Tenant(id=uuid4(), slug="acme", name="Acme", db_name="tenant_acme", db_host="acme-db")

    url = build_tenant_url(tenant, defaults)

    assert url.drivername == "postgresql+asyncpg"
    assert url.host == "acme-db"
    assert url.port == 5432
    assert url.username == "app"
    assert url.database == "tenant_acme"


def test_build_tenant_url_for_sqlite():
    tenant = Tenant(id=uuid4(), slug="acme", name="Acme", db_name="/tmp/acme.db")

    url = build_tenant_url(tenant, ApplicationConfig)

    assert url.drivername == "sqlite+aiosqlite"
    assert url.database == "/tmp/acme.db"
