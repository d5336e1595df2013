from abc import ABC, abstractmethod
from typing import Optional

class IKeyValueStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        pass

    async def close(self) -> None:
        pass
