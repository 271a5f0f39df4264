"""
Bearer token authentication against the routed database.

Tokens live in the same database as their user. With a tenant context
the lookup happens in that tenant's database only; without one it
happens in the central database. A token issued by one tenant therefore
never authenticates against another.
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Optional, Union

from src.app.services.unit_of_work import TenantUnitOfWork, UnitOfWork
from src.app.tenancy.context import IConnectionRouter, TenantContext
from src.app.tenancy.resolver import ResolutionRequest, TenantResolver
from src.domain import errors
from src.domain.base import utcnow
from src.domain.entities.enums import UserRole
from src.libs.result import Error, Result, Return

logger = logging.getLogger(__name__)

TOKEN_SECRET_BYTES = 20


def hash_token_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def new_token_secret() -> str:
    return secrets.token_hex(TOKEN_SECRET_BYTES)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: int
    email: str
    name: str
    role: UserRole
    token_id: int
    tenant_slug: Optional[str] = None

    @property
    def can_manage_billing(self) -> bool:
        return self.role in (UserRole.owner, UserRole.admin)


def _unauthenticated(message: str = "Unauthenticated") -> Result:
    return Return.err(Error(errors.UNAUTHENTICATED, message))


class TokenAuthenticator:
    def __init__(self, clock: Callable = utcnow):
        self.clock = clock

    async def authenticate(
        self,
        token: Optional[str],
        context: Optional[TenantContext],
        central_uow: UnitOfWork,
    ) -> Result[AuthenticatedUser]:
        """
        Authenticate a plain-text token.

        Args:
            token: "{id}|{secret}" or a bare secret
            context: routed tenant, or None for central users
            central_uow: used only when there is no tenant context

        Returns:
            Result[AuthenticatedUser], UNAUTHENTICATED on any mismatch
        """
        if not token:
            return _unauthenticated()

        uow: Union[UnitOfWork, TenantUnitOfWork]
        uow = context.unit_of_work() if context is not None else central_uow
        tenant_slug = context.slug if context is not None else None

        async with uow:
            access_token = await self._find_token(uow, token)
            if access_token is None:
                return _unauthenticated()

            now = self.clock()
            if access_token.expires_at is not None and access_token.expires_at <= now:
                return _unauthenticated("Token expired")

            user = await uow.users.get_by_id(access_token.user_id)
            if user is None or not user.is_active:
                return _unauthenticated()

            access_token.last_used_at = now
            await uow.access_tokens.update(access_token)
            await uow.commit()

            return Return.ok(
                AuthenticatedUser(
                    id=user.id,
                    email=user.email,
                    name=user.name,
                    role=user.role,
                    token_id=access_token.id,
                    tenant_slug=tenant_slug,
                )
            )

    async def authenticate_request(
        self,
        request: ResolutionRequest,
        token: Optional[str],
        central_uow: UnitOfWork,
        resolver: TenantResolver,
        router: IConnectionRouter,
    ) -> Result[AuthenticatedUser]:
        """
        Resolve, route and authenticate in one call.

        Used on routes that may run without a tenant. A routing failure
        is logged and the token is checked against the central database,
        which holds no tenant tokens.
        """
        context = None
        extracted = resolver.extract(request)
        if extracted.is_err():
            logger.warning(f"Ignoring tenant identifier: {extracted.error.message}")
        elif extracted.value is not None:
            routed = await router.route(central_uow, extracted.value)
            if routed.is_ok():
                context = routed.value
            else:
                logger.warning(
                    f"Tenant {extracted.value.slug} could not be routed "
                    f"({routed.error.code}); falling back to central authentication"
                )

        return await self.authenticate(token, context, central_uow)

    async def _find_token(self, uow, token: str):
        if "|" not in token:
            return await uow.access_tokens.get_by_hash(hash_token_secret(token))

        token_id, secret = token.split("|", 1)
        if not token_id.isdigit() or not secret:
            return None

        access_token = await uow.access_tokens.get_by_id(int(token_id))
        if access_token is None:
            return None
        if not hmac.compare_digest(access_token.token_hash, hash_token_secret(secret)):
            return None
        return access_token
