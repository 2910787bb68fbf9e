import os

# Tokens are signed with JWT_SECRET; give the test run its own.
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from src.api.db import Database
from src.api.main import create_app
from src.api.todo_store import TodoStore
from src.api.user_store import UserStore

TEST_DB = "test_db"


@pytest.fixture(scope="function")
async def database():
    """In-memory document store bound to the Beanie models, dropped after each test."""
    db = Database(name=TEST_DB, client=AsyncMongoMockClient())
    await db.open()
    try:
        yield db
    finally:
        await db.drop()
        db.close()


@pytest.fixture(scope="function")
async def todo_store(database):
    return TodoStore(database)


@pytest.fixture(scope="function")
async def user_store(database):
    return UserStore(database)


@pytest.fixture(scope="function")
def client():
    """TestClient running the app lifespan against an in-memory store."""
    app = create_app(Database(name=TEST_DB, client=AsyncMongoMockClient()))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def seeded_todos(client):
    """Two todos: the first open, the second completed."""
    first = client.post("/todos", json={"text": "First test todo"}).json()
    second = client.post("/todos", json={"text": "Second test todo"}).json()
    second = client.patch(f"/todos/{second['_id']}", json={"completed": True}).json()["todo"]
    return [first, second]


@pytest.fixture(scope="function")
def count_users(client):
    """Return a callable giving the number of stored users."""
    store = client.app.state.user_store
    return lambda: client.portal.call(store.count)


@pytest.fixture(scope="function")
def count_todos(client):
    """Return a callable giving the number of stored todos."""
    store = client.app.state.todo_store
    return lambda: client.portal.call(store.count)
