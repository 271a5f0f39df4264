"""
Routes a tenant identifier to that tenant's own database.

Engines are cached per tenant slug in a ``TenantEngineRegistry``. When a
tenant's coordinates change, the stale engine (and its pooled
connections) is disposed before a new one is registered. Nothing here
holds a "current tenant": every caller gets its own ``TenantContext``.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.services.unit_of_work import SqlAlchemyTenantUnitOfWork
from src.app.services.unit_of_work import TenantUnitOfWork, UnitOfWork
from src.app.tenancy.context import IConnectionRouter, ITenantConnection, TenantContext
from src.domain import errors
from src.domain.entities import Tenant
from src.domain.values import TenantIdentifier
from src.libs.result import Error, Result, Return

logger = logging.getLogger(__name__)


def build_tenant_url(tenant: Tenant, defaults) -> URL:
    """SQLAlchemy URL from the tenant's coordinates, falling back to TENANT_DB_* config."""
    driver = tenant.db_driver or defaults.TENANT_DB_DRIVER
    if driver.startswith("sqlite"):
        return URL.create(driver, database=tenant.db_name)

    return URL.create(
        driver,
        username=tenant.db_username or defaults.TENANT_DB_USERNAME,
        password=tenant.db_password or defaults.TENANT_DB_PASSWORD,
        host=tenant.db_host or defaults.TENANT_DB_HOST,
        port=tenant.db_port or defaults.TENANT_DB_PORT,
        database=tenant.db_name,
    )


def _url_key(url: URL) -> str:
    return url.render_as_string(hide_password=False)


class TenantEngineRegistry:
    """Process-wide map of tenant slug to async engine."""

    def __init__(self, engine_factory: Callable[..., AsyncEngine] = create_async_engine):
        self.engine_factory = engine_factory
        self._engines: Dict[str, AsyncEngine] = {}
        self._urls: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get(self, slug: str, url: URL) -> AsyncEngine:
        key = _url_key(url)
        async with self._lock:
            engine = self._engines.get(slug)
            if engine is not None and self._urls[slug] == key:
                return engine

            if engine is not None:
                logger.info(f"Tenant {slug} database changed; disposing stale engine")
                await engine.dispose()

            engine = self.engine_factory(url, echo=False, future=True)
            self._engines[slug] = engine
            self._urls[slug] = key
            return engine

    async def purge(self, slug: str) -> None:
        async with self._lock:
            engine = self._engines.pop(slug, None)
            self._urls.pop(slug, None)
        if engine is not None:
            await engine.dispose()

    async def dispose_all(self) -> None:
        async with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
            self._urls.clear()
        for engine in engines:
            await engine.dispose()

    def __contains__(self, slug: str) -> bool:
        return slug in self._engines


class SqlAlchemyTenantConnection(ITenantConnection):
    def __init__(self, engine: AsyncEngine, database: str):
        self.engine = engine
        self.database = database
        self._session_factory = sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

    def unit_of_work(self) -> TenantUnitOfWork:
        return SqlAlchemyTenantUnitOfWork(self._session_factory())


class ConnectionRouter(IConnectionRouter):
    def __init__(self, registry: TenantEngineRegistry, defaults):
        self.registry = registry
        self.defaults = defaults

    async def route(self, uow: UnitOfWork, identifier: TenantIdentifier) -> Result[TenantContext]:
        """
        Look the tenant up in the central database and open its connection.

        Returns:
            Result[TenantContext] or TENANT_NOT_FOUND / TENANT_SUSPENDED /
            TENANT_DATABASE_NOT_CONFIGURED
        """
        async with uow:
            tenant: Optional[Tenant] = await uow.tenants.get_by_slug(identifier.slug)
            if tenant is None:
                return Return.err(
                    Error(errors.TENANT_NOT_FOUND, f"Tenant {identifier.slug} not found")
                )
            if not tenant.is_routable:
                return Return.err(
                    Error(errors.TENANT_SUSPENDED, f"Tenant {identifier.slug} is {tenant.status.value}")
                )
            if not tenant.db_name:
                logger.error(f"Tenant {identifier.slug} has no database configured")
                return Return.err(
                    Error(
                        errors.TENANT_DATABASE_NOT_CONFIGURED,
                        f"Tenant {identifier.slug} has no database configured",
                    )
                )

            url = build_tenant_url(tenant, self.defaults)
            tenant_id, slug, name, plan = tenant.id, tenant.slug, tenant.name, tenant.plan
            database = tenant.db_name

        engine = await self.registry.get(slug, url)
        logger.debug(f"Routed tenant {slug} ({identifier.source}) to {database}")
        return Return.ok(
            TenantContext(
                tenant_id=tenant_id,
                slug=slug,
                name=name,
                plan=plan,
                connection=SqlAlchemyTenantConnection(engine, database),
            )
        )
