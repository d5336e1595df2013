import logging
from typing import Optional, Tuple

from epicircle.application.pickup_ledger import PickupLedger
from epicircle.application.session_manager import SessionManager
from epicircle.domain.routing import Screen, route
from epicircle.infrastructure.kv_store import connect_store
from epicircle.infrastructure.repositories.pickup_repository import KeyValuePickupRepository
from epicircle.infrastructure.repositories.user_repository import KeyValueUserRepository
from epicircle.interfaces.IKeyValueStore import IKeyValueStore

logger = logging.getLogger(__name__)


class AppContainer:
    """
    The app's state, handed to every consumer explicitly.
    Built once at process start (`create`), torn down at exit (`shutdown`).
    """

    def __init__(self, store: IKeyValueStore, session_manager: SessionManager, ledger: PickupLedger):
        self.store = store
        self.session_manager = session_manager
        self.ledger = ledger

    @classmethod
    def from_store(cls, store: IKeyValueStore, demo_otp: Optional[str] = None) -> "AppContainer":
        return cls(
            store=store,
            session_manager=SessionManager(KeyValueUserRepository(store), demo_otp=demo_otp),
            ledger=PickupLedger(KeyValuePickupRepository(store)),
        )

    @classmethod
    async def create(cls, redis_url: Optional[str] = None) -> "AppContainer":
        store = await connect_store(redis_url)
        container = cls.from_store(store)
        await container.startup()
        return container

    async def startup(self) -> None:
        await self.session_manager.load_session()
        await self.ledger.load()
        logger.info(f"✅ Loaded {len(self.ledger.requests)} pickup requests")

    async def shutdown(self) -> None:
        await self.store.close()

    def current_route(self) -> Tuple[Screen, ...]:
        return route(self.session_manager.session, loading=self.session_manager.loading)
