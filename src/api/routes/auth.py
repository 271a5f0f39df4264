from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.api.error import ClientError
from src.api.utils.jwt import create_oauth_state, verify_oauth_state
from src.api.utils.responses import SuccessResponse, ok, raise_for_error
from src.app.services.unit_of_work import UnitOfWork
from src.app.tenancy.authenticator import AuthenticatedUser
from src.app.tenancy.context import IConnectionRouter, TenantContext
from src.app.use_cases.auth import (
    IssueAccessTokenUseCase,
    IssueTokenCommand,
    IssueTokenResponse,
    MeResponse,
    UserInfo,
)
from src.depends import (
    get_connection_router,
    get_current_user_lenient,
    get_tenant_context,
    get_unit_of_work,
    require_tenant_context,
)
from src.domain import errors
from src.domain.values import TenantIdentifier
from src.libs.result import Error

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/token",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[IssueTokenResponse],
)
async def issue_token(
    command: IssueTokenCommand,
    context: Optional[TenantContext] = Depends(get_tenant_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Issue Access Token

    Checks the credentials against the routed database (the tenant's
    database with X-Tenant, the central database without) and returns a
    new "{id}|{secret}" bearer token. The token is shown once.

    Raises:
        - 400 Bad Request: NO_TENANT_CONTEXT
        - 401 Unauthorized: INVALID_CREDENTIALS
        - 403 Forbidden: TENANT_SUSPENDED
        - 404 Not Found: TENANT_NOT_FOUND
    """
    result = await IssueAccessTokenUseCase(uow).execute(context, command)
    if result.is_err():
        raise_for_error(result.error)
    return ok(result.value)


@router.get("/me", response_model=SuccessResponse[MeResponse])
async def me(user: AuthenticatedUser = Depends(get_current_user_lenient)):
    """
    Current user

    Works with or without a tenant identifier. A tenant that cannot be
    routed falls back to the central database, where tenant tokens never
    authenticate.
    """
    return ok(
        MeResponse(
            user=UserInfo(id=user.id, email=user.email, name=user.name, role=user.role.value),
            tenant=user.tenant_slug,
        )
    )


@router.get("/{provider}/redirect")
async def oauth_redirect(
    provider: str,
    context: TenantContext = Depends(require_tenant_context),
):
    """Start an OAuth flow; the tenant travels in the signed state."""
    return ok({"provider": provider, "state": create_oauth_state(context.slug, provider)})


@router.get("/{provider}/callback")
async def oauth_callback(
    provider: str,
    state: str = Query(...),
    uow: UnitOfWork = Depends(get_unit_of_work),
    connection_router: IConnectionRouter = Depends(get_connection_router),
):
    """
    OAuth provider callback

    Providers call back without the tenant header, so the tenant comes
    from the signed state and is routed explicitly.

    Raises:
        - 401 Unauthorized: state invalid, expired or for another provider
        - 403 Forbidden: TENANT_SUSPENDED
        - 404 Not Found: TENANT_NOT_FOUND
    """
    payload = verify_oauth_state(state, provider)
    if payload is None:
        raise ClientError(
            Error(errors.UNAUTHENTICATED, "Invalid or expired OAuth state"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    routed = await connection_router.route(
        uow, TenantIdentifier(slug=payload["tenant"], source="state")
    )
    if routed.is_err():
        raise_for_error(routed.error)

    context = routed.value
    return ok({"provider": provider, "tenant": context.slug, "database": context.connection.database})
