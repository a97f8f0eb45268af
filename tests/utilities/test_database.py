"""
Tests for the MongoDB connection manager.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import ConnectionFailure

from utilities.database import MongoDBManager


@pytest.fixture
def motor_client():
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    database = MagicMock()
    for name in ("genres", "authors", "books", "users", "reviews"):
        collection = getattr(database, name)
        collection.create_index = AsyncMock()
        collection.count_documents = AsyncMock(return_value=0)
    database.command = AsyncMock(return_value={"ok": 1})
    client.__getitem__.return_value = database
    with patch("utilities.database.AsyncIOMotorClient", return_value=client):
        yield client


@pytest.mark.asyncio
async def test_connect_creates_unique_indexes(motor_client):
    manager = MongoDBManager("mongodb://example", "bookshelf")

    database = await manager.connect()

    motor_client.__getitem__.assert_called_with("bookshelf")
    database.genres.create_index.assert_any_await("name", unique=True)
    database.users.create_index.assert_any_await("username", unique=True)
    database.users.create_index.assert_any_await("email", unique=True)


@pytest.mark.asyncio
async def test_connect_failure_propagates(motor_client):
    motor_client.admin.command.side_effect = ConnectionFailure("down")
    manager = MongoDBManager("mongodb://example", "bookshelf")

    with pytest.raises(ConnectionFailure):
        await manager.connect()


@pytest.mark.asyncio
async def test_health_check(motor_client):
    manager = MongoDBManager("mongodb://example", "bookshelf")
    await manager.connect()

    assert (await manager.health_check())["status"] == "healthy"

    manager.database.command.side_effect = Exception("gone")
    health = await manager.health_check()
    assert health == {"status": "unhealthy", "error": "gone"}


@pytest.mark.asyncio
async def test_disconnect_closes_client(motor_client):
    manager = MongoDBManager("mongodb://example", "bookshelf")
    await manager.connect()

    await manager.disconnect()

    motor_client.close.assert_called_once()
