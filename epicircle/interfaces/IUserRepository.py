from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from epicircle.domain.models import User

class IUserRepository(ABC):
    @abstractmethod
    async def load_all(self) -> List[User]:
        pass

    @abstractmethod
    async def save_all(self, users: List[User]) -> None:
        pass

    @abstractmethod
    async def load_session(self) -> Tuple[Optional[str], Optional[User]]:
        pass

    @abstractmethod
    async def save_session(self, token: str, user: User) -> None:
        pass

    @abstractmethod
    async def clear_session(self) -> None:
        pass
