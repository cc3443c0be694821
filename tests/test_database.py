from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from interview_app import database
from interview_app.database import Database, get_db


class FakeMotorClient:
    instances = []

    def __init__(self, url, **kwargs):
        self.url = url
        self.kwargs = kwargs
        self.admin = MagicMock()
        self.admin.command = AsyncMock(return_value={"ok": 1})
        self.closed = False
        self.databases = {}
        FakeMotorClient.instances.append(self)

    def __getitem__(self, name):
        return self.databases.setdefault(name, MagicMock(name=name))

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def fake_client(monkeypatch):
    FakeMotorClient.instances = []
    monkeypatch.setattr(database, "AsyncIOMotorClient", FakeMotorClient)
    yield
    Database.client = None
    Database.db = None


@pytest.mark.asyncio
async def test_connect_pings_and_selects_database():
    await Database.connect("mongodb://db:27017", "practice_test")

    client = FakeMotorClient.instances[0]
    assert client.url == "mongodb://db:27017"
    assert client.kwargs == {"serverSelectionTimeoutMS": 5000}
    client.admin.command.assert_awaited_with("ping")
    assert await get_db() is client.databases["practice_test"]


@pytest.mark.asyncio
async def test_connect_failure_leaves_database_unset(monkeypatch):
    original_init = FakeMotorClient.__init__

    def _init(self, url, **kwargs):
        original_init(self, url, **kwargs)
        self.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))

    monkeypatch.setattr(FakeMotorClient, "__init__", _init)

    with pytest.raises(ServerSelectionTimeoutError):
        await Database.connect("mongodb://nowhere:27017", "practice_test")

    assert FakeMotorClient.instances[0].closed is True
    with pytest.raises(RuntimeError):
        Database.get_database()


@pytest.mark.asyncio
async def test_disconnect_closes_client():
    await Database.connect()
    client = FakeMotorClient.instances[0]

    await Database.disconnect()
    await Database.disconnect()

    assert client.closed is True
    assert Database.client is None
    assert Database.db is None
