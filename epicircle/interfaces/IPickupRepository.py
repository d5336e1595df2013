from abc import ABC, abstractmethod
from typing import List

from epicircle.domain.models import PickupRequest

class IPickupRepository(ABC):
    @abstractmethod
    async def load_all(self) -> List[PickupRequest]:
        pass

    @abstractmethod
    async def save_all(self, requests: List[PickupRequest]) -> None:
        pass
