import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from arklet import create_arklet
from arklet.core.db import build_tortoise_config


TEST_DB_URL = "sqlite://:memory:"


async def _reset_tortoise() -> None:
    """
    Close whatever a previous test left open so every test starts without a
    live database connection.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()


@pytest.fixture
def make_arklet():
    """
    Factory fixture for Arklet instances wired to an in-memory SQLite database.
    Extra keyword options override the test defaults.
    """

    def _make(**options):
        defaults = {
            "env": "test",
            "database url": TEST_DB_URL,
            "generate schemas": True,
            "cookie secret": "test-cookie-secret",
            "logger": None,
        }
        defaults.update(options)
        return create_arklet(defaults)

    return _make


@pytest_asyncio.fixture
async def db():
    """
    Open an in-memory SQLite database with the framework tables, for tests
    that need storage without going through bootstrap.
    """
    await _reset_tortoise()
    await Tortoise.init(config=build_tortoise_config(TEST_DB_URL))
    await Tortoise.generate_schemas()
    yield
    await _reset_tortoise()


@pytest_asyncio.fixture
async def clean_db():
    """Guarantee no connection is open before and after the test."""
    await _reset_tortoise()
    yield
    await _reset_tortoise()


@pytest_asyncio.fixture
async def client_for():
    """
    Factory fixture returning an HTTPX AsyncClient bound to an ASGI app.
    Clients are closed at teardown.
    """
    clients = []

    async def _client_for(app) -> AsyncClient:
        transport = ASGITransport(app=app)
        client = AsyncClient(transport=transport, base_url="http://testserver")
        clients.append(client)
        return client

    yield _client_for
    for client in clients:
        await client.aclose()
