"""
Issue Access Token Use Case

Checks email + password against the routed database (tenant database
with a tenant context, central database without one) and issues a
personal access token stored in that same database.
"""

from typing import Optional, Union

import bcrypt

from src.app.services.unit_of_work import TenantUnitOfWork, UnitOfWork
from src.app.tenancy.authenticator import hash_token_secret, new_token_secret
from src.app.tenancy.context import TenantContext
from src.domain import errors
from src.domain.entities import PersonalAccessToken
from src.libs.result import Error, Result, Return

from .dtos import IssueTokenCommand, IssueTokenResponse, UserInfo


class IssueAccessTokenUseCase:
    """
    Business Rules:
    - Constant-time password comparison to prevent timing attacks
    - User must be active
    - Token is "{id}|{secret}"; only sha256(secret) is stored
    """

    def __init__(self, central_uow: UnitOfWork):
        self.central_uow = central_uow

    async def execute(
        self, context: Optional[TenantContext], command: IssueTokenCommand
    ) -> Result[IssueTokenResponse]:
        uow: Union[UnitOfWork, TenantUnitOfWork]
        uow = context.unit_of_work() if context is not None else self.central_uow

        async with uow:
            user = await uow.users.get_by_email(command.email.strip().lower())

            # Always perform a hash check even if the user is not found
            if user is None:
                bcrypt.checkpw(b"dummy_password", bcrypt.gensalt(12))
                return Return.err(
                    Error(errors.INVALID_CREDENTIALS, "Invalid email or password")
                )

            password_valid = bcrypt.checkpw(
                command.password.encode(), user.password_hash.encode()
            )
            if not password_valid or not user.is_active:
                return Return.err(
                    Error(errors.INVALID_CREDENTIALS, "Invalid email or password")
                )

            secret = new_token_secret()
            token = await uow.access_tokens.create(
                PersonalAccessToken(
                    user_id=user.id,
                    name=command.token_name,
                    token_hash=hash_token_secret(secret),
                )
            )
            await uow.commit()

            return Return.ok(
                IssueTokenResponse(
                    token=f"{token.id}|{secret}",
                    user=UserInfo(
                        id=user.id,
                        email=user.email,
                        name=user.name,
                        role=user.role.value,
                    ),
                    tenant=context.slug if context is not None else None,
                )
            )
