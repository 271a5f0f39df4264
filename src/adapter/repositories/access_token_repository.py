from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.access_token_repository import IAccessTokenRepository
from src.domain.entities import PersonalAccessToken


class AccessTokenRepository(IAccessTokenRepository):
    """Personal access token repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, token_id: int) -> Optional[PersonalAccessToken]:
        stmt = select(PersonalAccessToken).where(PersonalAccessToken.id == token_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_hash(self, token_hash: str) -> Optional[PersonalAccessToken]:
        stmt = select(PersonalAccessToken).where(PersonalAccessToken.token_hash == token_hash)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create(self, token: PersonalAccessToken) -> PersonalAccessToken:
        self.session.add(token)
        await self.session.flush()
        await self.session.refresh(token)
        return token

    async def update(self, token: PersonalAccessToken) -> PersonalAccessToken:
        self.session.add(token)
        await self.session.flush()
        await self.session.refresh(token)
        return token
