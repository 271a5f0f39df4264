from abc import ABC, abstractmethod
from typing import Optional

from src.domain.entities import PersonalAccessToken


class IAccessTokenRepository(ABC):
    """Personal access token repository interface"""

    @abstractmethod
    async def get_by_id(self, token_id: int) -> Optional[PersonalAccessToken]:
        pass

    @abstractmethod
    async def get_by_hash(self, token_hash: str) -> Optional[PersonalAccessToken]:
        pass

    @abstractmethod
    async def create(self, token: PersonalAccessToken) -> PersonalAccessToken:
        pass

    @abstractmethod
    async def update(self, token: PersonalAccessToken) -> PersonalAccessToken:
        pass
