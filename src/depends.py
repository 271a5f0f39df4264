from typing import Optional

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.gateways.factory import build_payment_gateway
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.tenancy.connection_router import ConnectionRouter, TenantEngineRegistry
from src.api.error import ClientError
from src.api.utils.request import resolution_request
from src.api.utils.responses import raise_for_error
from src.app.services.billing_rules import BillingRules
from src.app.services.payment_gateway import IPaymentGateway
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.authenticator import AuthenticatedUser, TokenAuthenticator
from src.app.tenancy.context import IConnectionRouter, TenantContext
from src.app.tenancy.resolver import TenantResolver
from src.domain import errors
from src.libs.result import Error

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

security = HTTPBearer(auto_error=False)

engine_registry = TenantEngineRegistry()
tenant_resolver = TenantResolver.from_config(ApplicationConfig)
connection_router = ConnectionRouter(engine_registry, ApplicationConfig)
token_authenticator = TokenAuthenticator()
billing_rules = BillingRules.from_config(ApplicationConfig)

_payment_gateway: Optional[IPaymentGateway] = None


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_engine_registry() -> TenantEngineRegistry:
    return engine_registry


def get_tenant_resolver() -> TenantResolver:
    return tenant_resolver


def get_connection_router() -> IConnectionRouter:
    return connection_router


def get_authenticator() -> TokenAuthenticator:
    return token_authenticator


def get_billing_rules() -> BillingRules:
    return billing_rules


def get_payment_gateway() -> IPaymentGateway:
    """Process-wide gateway, built on first use from PAYMENT_GATEWAY."""
    global _payment_gateway
    if _payment_gateway is None:
        _payment_gateway = build_payment_gateway(ApplicationConfig)
    return _payment_gateway


async def get_tenant_context(
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    resolver: TenantResolver = Depends(get_tenant_resolver),
    router: IConnectionRouter = Depends(get_connection_router),
) -> Optional[TenantContext]:
    """
    Phase one of every tenant-aware request: identify, then route.

    Returns None only on routes that may run without a tenant.

    Raises:
        ClientError: 400 NO_TENANT_CONTEXT, 404 TENANT_NOT_FOUND,
            403 TENANT_SUSPENDED
        ServerError: TENANT_DATABASE_NOT_CONFIGURED
    """
    resolved = resolver.resolve(resolution_request(request))
    if resolved.is_err():
        raise_for_error(resolved.error)
    if resolved.value is None:
        return None

    routed = await router.route(uow, resolved.value)
    if routed.is_err():
        raise_for_error(routed.error)
    return routed.value


async def require_tenant_context(
    context: Optional[TenantContext] = Depends(get_tenant_context),
) -> TenantContext:
    if context is None:
        raise ClientError(
            Error(errors.NO_TENANT_CONTEXT, "Tenant identifier required"),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return context


async def get_current_user(
    context: Optional[TenantContext] = Depends(get_tenant_context),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    uow: UnitOfWork = Depends(get_unit_of_work),
    authenticator: TokenAuthenticator = Depends(get_authenticator),
) -> AuthenticatedUser:
    """
    Phase two: authenticate the bearer token against the routed database.

    Raises:
        ClientError: 401 if the token is missing, unknown or expired
    """
    token = credentials.credentials if credentials else None
    result = await authenticator.authenticate(token, context, uow)
    if result.is_err():
        raise_for_error(result.error)
    return result.value


async def get_current_user_lenient(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    uow: UnitOfWork = Depends(get_unit_of_work),
    authenticator: TokenAuthenticator = Depends(get_authenticator),
    resolver: TenantResolver = Depends(get_tenant_resolver),
    router: IConnectionRouter = Depends(get_connection_router),
) -> AuthenticatedUser:
    """Like get_current_user, but an unroutable tenant falls back to central lookup."""
    token = credentials.credentials if credentials else None
    result = await authenticator.authenticate_request(
        resolution_request(request), token, uow, resolver, router
    )
    if result.is_err():
        raise_for_error(result.error)
    return result.value


async def require_billing_admin(
    user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Billing mutations are limited to tenant owners and admins."""
    if not user.can_manage_billing:
        raise ClientError(
            Error(errors.FORBIDDEN, "Only owners and admins can manage billing"),
            status_code=status.HTTP_403_FORBIDDEN,
        )
    return user
