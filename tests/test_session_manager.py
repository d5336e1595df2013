import json

import pytest

from epicircle.application.session_manager import SessionManager
from epicircle.domain.models import Session, UserType
from epicircle.infrastructure.repositories.user_repository import (
    AUTH_TOKEN_KEY,
    USER_DATA_KEY,
    USER_DATABASE_KEY,
    KeyValueUserRepository,
)


async def test_wrong_code_changes_nothing(session_manager, store):
    ok = await session_manager.login("9999999999", "000000", "customer")

    assert ok is False
    assert session_manager.session == Session()
    assert store.writes == 0
    assert store.blob(USER_DATABASE_KEY) is None


async def test_first_login_creates_user_and_session(session_manager, store):
    ok = await session_manager.login("9876543210", "123456", UserType.CUSTOMER)

    assert ok is True
    session = session_manager.session
    assert session.is_authenticated
    assert session.user.id == "customer_1700000000000"
    assert session.user.name == "Customer User"
    assert session.user.type == UserType.CUSTOMER
    assert session.token == "token_1700000000000"

    assert store.blob(USER_DATABASE_KEY) == [
        {"id": "customer_1700000000000", "phoneNumber": "9876543210", "name": "Customer User", "type": "customer"}
    ]
    assert await store.get(AUTH_TOKEN_KEY) == "token_1700000000000"
    assert store.blob(USER_DATA_KEY)["phoneNumber"] == "9876543210"


async def test_second_login_reuses_user(session_manager, store):
    await session_manager.login("9876543210", "123456", "partner")
    first_user = session_manager.session.user

    await session_manager.logout()
    await session_manager.login("9876543210", "123456", "partner")

    assert session_manager.session.user == first_user
    assert session_manager.session.user.name == "Partner User"
    assert len(store.blob(USER_DATABASE_KEY)) == 1


async def test_same_phone_different_role_is_a_different_user(session_manager, store):
    await session_manager.login("9876543210", "123456", "customer")
    await session_manager.login("9876543210", "123456", "partner")

    users = store.blob(USER_DATABASE_KEY)
    assert [u["type"] for u in users] == ["customer", "partner"]
    assert users[0]["id"] != users[1]["id"]


async def test_user_ids_stay_unique_with_a_frozen_clock(session_manager, store):
    await session_manager.login("9000000001", "123456", "customer")
    await session_manager.login("9000000002", "123456", "customer")

    ids = [u["id"] for u in store.blob(USER_DATABASE_KEY)]
    assert ids == ["customer_1700000000000", "customer_1700000000001"]


async def test_unknown_role_is_refused(session_manager):
    assert await session_manager.login("9876543210", "123456", "admin") is False
    assert not session_manager.session.is_authenticated


async def test_store_failure_during_login_returns_false(session_manager, store):
    store.fail_writes = True

    assert await session_manager.login("9876543210", "123456", "customer") is False
    assert not session_manager.session.is_authenticated


async def test_load_session_restores_previous_login(session_manager, store):
    await session_manager.login("9876543210", "123456", "customer")

    restarted = SessionManager(KeyValueUserRepository(store))
    assert restarted.loading is True
    await restarted.load_session()

    assert restarted.loading is False
    assert restarted.session == session_manager.session


async def test_load_session_without_token_stays_logged_out(store):
    await store.set(USER_DATA_KEY, json.dumps({"id": "customer_1", "phoneNumber": "1", "name": "x", "type": "customer"}))
    manager = SessionManager(KeyValueUserRepository(store))

    await manager.load_session()

    assert manager.loading is False
    assert not manager.session.is_authenticated


async def test_load_session_survives_corrupt_user_data(store):
    await store.set(AUTH_TOKEN_KEY, "token_1")
    await store.set(USER_DATA_KEY, "{not json")
    manager = SessionManager(KeyValueUserRepository(store))

    await manager.load_session()

    assert manager.loading is False
    assert manager.session == Session()


async def test_load_session_survives_read_failure(store):
    store.fail_reads = True
    manager = SessionManager(KeyValueUserRepository(store))

    await manager.load_session()

    assert manager.loading is False
    assert not manager.session.is_authenticated


async def test_logout_clears_store_and_session(session_manager, store):
    await session_manager.login("9876543210", "123456", "customer")

    await session_manager.logout()

    assert session_manager.session == Session()
    assert await store.get(AUTH_TOKEN_KEY) is None
    assert await store.get(USER_DATA_KEY) is None
    # The user record itself is kept
    assert len(store.blob(USER_DATABASE_KEY)) == 1


async def test_logout_resets_memory_even_when_store_fails(session_manager, store):
    await session_manager.login("9876543210", "123456", "customer")
    store.fail_removes = True

    await session_manager.logout()

    assert not session_manager.session.is_authenticated
    # Known divergence: the token is still on disk and comes back on restart
    assert await store.get(AUTH_TOKEN_KEY) == "token_1700000000000"
    restarted = SessionManager(KeyValueUserRepository(store))
    await restarted.load_session()
    assert restarted.session.is_authenticated


@pytest.mark.parametrize("failing_key", [AUTH_TOKEN_KEY, USER_DATA_KEY])
async def test_failed_relogin_never_pairs_a_token_with_another_user(session_manager, store, failing_key):
    await session_manager.login("9876543210", "123456", "customer")
    store.fail_keys = {failing_key}

    assert await session_manager.login("9123456780", "123456", "partner") is False

    restarted = SessionManager(KeyValueUserRepository(store))
    await restarted.load_session()
    assert restarted.session == Session()
