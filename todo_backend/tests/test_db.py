import pytest
from mongomock_motor import AsyncMongoMockClient

from src.api import main
from src.api.db import Database
from src.api.todo_store import TodoStore


@pytest.mark.asyncio
async def test_second_handle_cannot_take_over_models(database):
    other = Database(name="other_db", client=AsyncMongoMockClient())
    with pytest.raises(RuntimeError):
        await other.open()
    assert not other.is_open

    with pytest.raises(RuntimeError):
        await TodoStore(other).create("lost")

    await TodoStore(database).create("mine")
    assert await TodoStore(database).count() == 1
    assert await other.client["other_db"]["todos"].count_documents({}) == 0


@pytest.mark.asyncio
async def test_models_follow_the_open_handle():
    first = Database(name="first_db", client=AsyncMongoMockClient())
    await first.open()
    await TodoStore(first).create("in first")
    first.close()

    second_client = AsyncMongoMockClient()
    second = Database(name="second_db", client=second_client)
    await second.open()
    try:
        with pytest.raises(RuntimeError):
            await TodoStore(first).count()
        await TodoStore(second).create("in second")
        assert await second_client["second_db"]["todos"].count_documents({}) == 1
    finally:
        second.close()


@pytest.mark.asyncio
async def test_open_is_idempotent(database):
    await database.open()
    assert database.is_open


def test_importing_main_builds_no_app():
    assert not hasattr(main, "app")
