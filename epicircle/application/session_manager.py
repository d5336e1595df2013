import logging
from typing import Callable, List

from epicircle.core.config import settings
from epicircle.domain.errors import StoreError
from epicircle.domain.models import Session, User, UserType, epoch_millis
from epicircle.interfaces.IUserRepository import IUserRepository

logger = logging.getLogger(__name__)

DEFAULT_NAMES = {
    UserType.CUSTOMER: "Customer User",
    UserType.PARTNER: "Partner User",
}


class SessionManager:
    """Owns the one session of this app instance: restore on start, login, logout."""

    def __init__(
        self,
        users: IUserRepository,
        demo_otp: str | None = None,
        clock: Callable[[], int] = epoch_millis,
    ):
        self.users = users
        self.demo_otp = demo_otp if demo_otp is not None else settings.DEMO_OTP
        self._clock = clock
        self.session = Session()
        self.loading = True

    async def load_session(self) -> None:
        try:
            token, user = await self.users.load_session()
            if token and user:
                self.session = Session(is_authenticated=True, user=user, token=token)
                logger.info(f"🔑 Session restored for {user.id}")
        except StoreError as e:
            logger.error(f"❌ Error loading auth state: {e}")
        finally:
            self.loading = False

    async def login(self, phone_number: str, code: str, role: UserType | str) -> bool:
        # Mock OTP check, nothing is sent or verified remotely
        if code != self.demo_otp:
            return False
        try:
            role = UserType(role)
        except ValueError:
            logger.warning(f"⚠️ Login rejected, unknown role: {role}")
            return False

        try:
            # 1. Load user database
            users = await self.users.load_all()

            # 2. Find existing user
            user = next((u for u in users if u.phone_number == phone_number and u.type == role), None)

            # 3. If user doesn't exist, create one and save it
            if user is None:
                user = User(
                    id=self._new_user_id(role, users),
                    phone_number=phone_number,
                    name=DEFAULT_NAMES[role],
                    type=role,
                )
                await self.users.save_all(users + [user])
                logger.info(f"👤 Created {role.value} {user.id}")

            token = f"token_{self._clock()}"
            await self.users.save_session(token, user)
        except StoreError as e:
            logger.error(f"❌ Login error: {e}")
            return False

        self.session = Session(is_authenticated=True, user=user, token=token)
        return True

    async def logout(self) -> None:
        # Memory is reset even when the store still holds the token
        try:
            await self.users.clear_session()
        except StoreError as e:
            logger.error(f"❌ Logout error: {e}")
        self.session = Session()

    def _new_user_id(self, role: UserType, users: List[User]) -> str:
        taken = {u.id for u in users}
        stamp = self._clock()
        while f"{role.value}_{stamp}" in taken:
            stamp += 1
        return f"{role.value}_{stamp}"
