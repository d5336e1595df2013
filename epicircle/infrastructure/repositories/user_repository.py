import json
from typing import List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from epicircle.domain.errors import StoreError
from epicircle.domain.models import User
from epicircle.interfaces.IKeyValueStore import IKeyValueStore
from epicircle.interfaces.IUserRepository import IUserRepository

USER_DATABASE_KEY = "userDatabase"
AUTH_TOKEN_KEY = "authToken"
USER_DATA_KEY = "userData"

_users_adapter = TypeAdapter(List[User])


class KeyValueUserRepository(IUserRepository):

    def __init__(self, store: IKeyValueStore):
        self.store = store

    async def load_all(self) -> List[User]:
        raw = await self.store.get(USER_DATABASE_KEY)
        if not raw:
            return []
        try:
            return _users_adapter.validate_json(raw)
        except ValidationError as e:
            raise StoreError(f"Corrupt '{USER_DATABASE_KEY}' blob: {e.error_count()} errors") from e

    async def save_all(self, users: List[User]) -> None:
        await self.store.set(USER_DATABASE_KEY, json.dumps([u.to_json() for u in users]))

    async def load_session(self) -> Tuple[Optional[str], Optional[User]]:
        """Cached token + user snapshot from the last login. (None, None) when logged out."""
        token = await self.store.get(AUTH_TOKEN_KEY)
        user_data = await self.store.get(USER_DATA_KEY)
        if not token or not user_data:
            return None, None
        try:
            return token, User.model_validate_json(user_data)
        except ValidationError as e:
            raise StoreError(f"Corrupt '{USER_DATA_KEY}' blob: {e.error_count()} errors") from e

    async def save_session(self, token: str, user: User) -> None:
        # A token is only present once its user snapshot is written
        await self.store.remove(AUTH_TOKEN_KEY)
        await self.store.set(USER_DATA_KEY, json.dumps(user.to_json()))
        await self.store.set(AUTH_TOKEN_KEY, token)

    async def clear_session(self) -> None:
        await self.store.remove(AUTH_TOKEN_KEY)
        await self.store.remove(USER_DATA_KEY)
