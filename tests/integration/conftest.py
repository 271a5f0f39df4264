from datetime import timedelta

import bcrypt
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.gateways.simulated_gateway import SimulatedPaymentGateway
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.tenancy.connection_router import ConnectionRouter, TenantEngineRegistry
from src.adapter.tenancy.schema import create_central_schema, create_tenant_schema
from src.app.tenancy.authenticator import hash_token_secret
from src.depends import (
    get_connection_router,
    get_engine_registry,
    get_payment_gateway,
    get_session,
    get_unit_of_work,
)
from src.domain.base import utcnow
from src.domain.entities import PersonalAccessToken, Subscription, Tenant, User
from src.domain.entities.enums import PlanTier, SubscriptionStatus, TenantStatus, UserRole
from tests.fixtures.json_loader import TestDataLoader


def _users_and_tokens(scope: str):
    users = [
        User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            role=UserRole(row["role"]),
            is_active=row["is_active"],
            password_hash=bcrypt.hashpw(row["password"].encode(), bcrypt.gensalt(4)).decode(),
        )
        for row in TestDataLoader.rows("users", scope)
    ]
    tokens = [
        PersonalAccessToken(
            id=row["id"],
            user_id=row["user_id"],
            token_hash=hash_token_secret(row["secret"]),
        )
        for row in TestDataLoader.rows("tokens", scope)
    ]
    return users, tokens


async def _seed(engine, rows) -> None:
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as session:
        for group in rows:
            session.add_all(group)
            await session.commit()


@pytest_asyncio.fixture
def test_data():
    return TestDataLoader()


@pytest_asyncio.fixture
async def tenant_databases(tmp_path):
    """One sqlite file per seeded tenant, with its users and tokens."""
    paths = {}
    for row in TestDataLoader.get_copy("tenants"):
        path = str(tmp_path / f"{row['slug']}.db")
        engine = create_async_engine(f"sqlite+aiosqlite:///{path}")
        await create_tenant_schema(engine)
        await _seed(engine, _users_and_tokens(row["slug"]))
        await engine.dispose()
        paths[row["slug"]] = path
    return paths


@pytest_asyncio.fixture
async def engine(tmp_path, tenant_databases):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'central.db'}")
    await create_central_schema(engine)

    now = utcnow()
    tenants, subscriptions = [], []
    plans = TestDataLoader.get_copy("subscriptions")
    for row in TestDataLoader.get_copy("tenants"):
        tenant = Tenant(
            slug=row["slug"],
            name=row["name"],
            plan=PlanTier(row["plan"]),
            status=TenantStatus(row["status"]),
            db_driver="sqlite+aiosqlite",
            db_name=tenant_databases[row["slug"]],
        )
        plan = plans[row["slug"]]
        tenants.append(tenant)
        subscriptions.append(
            Subscription(
                tenant_id=tenant.id,
                plan=PlanTier(plan["plan"]),
                user_limit=plan["user_limit"],
                addons=plan["addons"],
                status=SubscriptionStatus(plan["status"]),
                billing_period_started_at=now - timedelta(days=20),
                billing_period_ends_at=now + timedelta(days=10),
                next_renewal_at=now + timedelta(days=10),
            )
        )

    users, tokens = _users_and_tokens("central")
    await _seed(engine, [tenants, subscriptions, users, tokens])

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def engine_registry():
    registry = TenantEngineRegistry()
    yield registry
    await registry.dispose_all()


@pytest_asyncio.fixture
def payment_gateway():
    return SimulatedPaymentGateway()


@pytest_asyncio.fixture
async def client(session_factory, engine_registry, payment_gateway):
    from src.api.app import create_app

    app = create_app(ApplicationConfig)
    router = ConnectionRouter(engine_registry, ApplicationConfig)

    async def override_get_session():
        async with session_factory() as session:
            yield session

    async def override_get_unit_of_work():
        async with session_factory() as session:
            yield SqlAlchemyUnitOfWork(session)

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    app.dependency_overrides[get_engine_registry] = lambda: engine_registry
    app.dependency_overrides[get_connection_router] = lambda: router
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _tenant_headers(slug: str, secret: str = None, token_id: int = 1) -> dict:
    headers = {ApplicationConfig.TENANT_HEADER: slug}
    if secret:
        headers["Authorization"] = f"Bearer {token_id}|{secret}"
    return headers


@pytest_asyncio.fixture
def tenant_headers():
    return _tenant_headers


@pytest_asyncio.fixture
def acme_owner():
    return _tenant_headers("acme", "acme-owner-secret", 1)


@pytest_asyncio.fixture
def acme_member():
    return _tenant_headers("acme", "acme-member-secret", 2)


@pytest_asyncio.fixture
def admin_headers():
    return {"X-Admin-API-Key": ApplicationConfig.ADMIN_API_KEY}
