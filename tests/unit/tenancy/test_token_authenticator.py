"""
Unit tests for TokenAuthenticator
Tokens are looked up only in the routed database.
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from src.app.tenancy.authenticator import TokenAuthenticator, hash_token_secret
from src.app.tenancy.context import TenantContext
from src.app.tenancy.resolver import ResolutionRequest, TenantResolver
from src.domain.entities import PersonalAccessToken, User
from src.domain.entities.enums import PlanTier, UserRole
from src.domain.values import TenantIdentifier
from src.libs.result import Error, Return

NOW = datetime(2026, 3, 10, 12, 0, 0)
SECRET = "a" * 40


def _uow(tokens=(), users=()):
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)
    uow.commit = AsyncMock()
    by_id = {t.id: t for t in tokens}
    by_hash = {t.token_hash: t for t in tokens}
    users_by_id = {u.id: u for u in users}
    uow.access_tokens.get_by_id = AsyncMock(side_effect=lambda i: by_id.get(i))
    uow.access_tokens.get_by_hash = AsyncMock(side_effect=lambda h: by_hash.get(h))
    uow.access_tokens.update = AsyncMock(side_effect=lambda t: t)
    uow.users.get_by_id = AsyncMock(side_effect=lambda i: users_by_id.get(i))
    return uow


def _context(slug, tenant_uow):
    connection = MagicMock()
    connection.database = f"{slug}.db"
    connection.unit_of_work = MagicMock(return_value=tenant_uow)
    return TenantContext(
        tenant_id=uuid4(), slug=slug, name=slug.title(), plan=PlanTier.team, connection=connection
    )


@pytest.fixture
def owner():
    return User(id=1, email="owner@acme.com", name="Owner", password_hash="x", role=UserRole.owner)


@pytest.fixture
def token():
    return PersonalAccessToken(id=7, user_id=1, name="api", token_hash=hash_token_secret(SECRET))


@pytest.fixture
def authenticator():
    return TokenAuthenticator(clock=lambda: NOW)


@pytest.mark.asyncio
async def test_authenticates_against_tenant_database(authenticator, owner, token):
    tenant_uow = _uow(tokens=[token], users=[owner])
    central_uow = _uow()

    result = await authenticator.authenticate(f"7|{SECRET}", _context("acme", tenant_uow), central_uow)

    assert result.is_ok()
    user = result.value
    assert user.id == 1
    assert user.tenant_slug == "acme"
    assert user.can_manage_billing
    assert token.last_used_at == NOW
    tenant_uow.commit.assert_called_once()
    central_uow.access_tokens.get_by_id.assert_not_called()


@pytest.mark.asyncio
async def test_token_from_other_tenant_is_rejected(authenticator, owner, token):
    """A token minted in acme's database means nothing in beta's database."""
    beta_uow = _uow()

    result = await authenticator.authenticate(f"7|{SECRET}", _context("beta", beta_uow), _uow())

    assert result.is_err()
    assert result.error.code == "UNAUTHENTICATED"


@pytest.mark.asyncio
async def test_wrong_secret_is_rejected(authenticator, owner, token):
    tenant_uow = _uow(tokens=[token], users=[owner])

    result = await authenticator.authenticate("7|" + "b" * 40, _context("acme", tenant_uow), _uow())

    assert result.error.code == "UNAUTHENTICATED"
    tenant_uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_bare_secret_is_looked_up_by_hash(authenticator, owner, token):
    tenant_uow = _uow(tokens=[token], users=[owner])

    result = await authenticator.authenticate(SECRET, _context("acme", tenant_uow), _uow())

    assert result.is_ok()
    assert result.value.token_id == 7


@pytest.mark.asyncio
async def test_expired_token_is_rejected(authenticator, owner, token):
    token.expires_at = NOW - timedelta(minutes=1)
    tenant_uow = _uow(tokens=[token], users=[owner])

    result = await authenticator.authenticate(f"7|{SECRET}", _context("acme", tenant_uow), _uow())

    assert result.error.code == "UNAUTHENTICATED"
    assert result.error.message == "Token expired"


@pytest.mark.asyncio
async def test_inactive_user_is_rejected(authenticator, owner, token):
    owner.is_active = False
    tenant_uow = _uow(tokens=[token], users=[owner])

    result = await authenticator.authenticate(f"7|{SECRET}", _context("acme", tenant_uow), _uow())

    assert result.error.code == "UNAUTHENTICATED"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(authenticator):
    result = await authenticator.authenticate(None, None, _uow())

    assert result.error.code == "UNAUTHENTICATED"


@pytest.mark.asyncio
async def test_central_lookup_without_context(authenticator, owner, token):
    central_uow = _uow(tokens=[token], users=[owner])

    result = await authenticator.authenticate(f"7|{SECRET}", None, central_uow)

    assert result.is_ok()
    assert result.value.tenant_slug is None


@pytest.mark.asyncio
async def test_unroutable_tenant_falls_back_to_central(authenticator, owner, token):
    """Routing failure is not an authentication bypass: central has no tenant tokens."""
    central_uow = _uow()
    router = MagicMock()
    router.route = AsyncMock(
        return_value=Return.err(Error("TENANT_SUSPENDED", "Tenant acme is suspended"))
    )
    request = ResolutionRequest(method="GET", path="/api/auth/me", headers={"X-Tenant": "acme"})

    result = await authenticator.authenticate_request(
        request, f"7|{SECRET}", central_uow, TenantResolver(), router
    )

    assert result.error.code == "UNAUTHENTICATED"
    router.route.assert_called_once()
    identifier = router.route.call_args[0][1]
    assert identifier == TenantIdentifier(slug="acme", source="header")
    central_uow.access_tokens.get_by_id.assert_called_once_with(7)
