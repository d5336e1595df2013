import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import Field

from epicircle.application.container import AppContainer
from epicircle.domain.models import CamelModel, UserType

router = APIRouter()
logger = logging.getLogger(__name__)


def get_container(request: Request) -> AppContainer:
    """Retrieves the app container from app.state (Dependency Injection)."""
    return request.app.state.container


class LoginPayload(CamelModel):
    phone_number: str = Field(min_length=10)
    code: str
    role: UserType


def session_snapshot(container: AppContainer) -> dict:
    manager = container.session_manager
    return {
        "session": manager.session.to_json(),
        "loading": manager.loading,
        "screens": [screen.value for screen in container.current_route()],
    }


@router.get("/session")
def read_session(container: AppContainer = Depends(get_container)):
    return session_snapshot(container)


@router.post("/auth/login")
async def login(payload: LoginPayload, container: AppContainer = Depends(get_container)):
    phone_number = payload.phone_number.strip()
    success = await container.session_manager.login(phone_number, payload.code.strip(), payload.role)
    if not success:
        logger.info(f"🔒 Login failed for {phone_number}")
        raise HTTPException(status_code=401, detail="Invalid OTP or login failed. Please try again.")
    return session_snapshot(container)


@router.post("/auth/logout")
async def logout(container: AppContainer = Depends(get_container)):
    await container.session_manager.logout()
    return session_snapshot(container)
