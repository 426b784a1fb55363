"""
Unit tests for ConnectionManager.

Tests connection initialization, error handling and shutdown.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from shopkeeper.core.connection import ConnectionManager
from shopkeeper.exceptions import InitializationError


@pytest.fixture
def connection_config():
    """Provide default configuration for ConnectionManager."""
    return {
        "mongo_uri": "mongodb://localhost:27017",
        "db_name": "test_db",
        "max_pool_size": 10,
        "min_pool_size": 1,
    }


@pytest.mark.unit
class TestConnectionManager:
    @pytest.mark.asyncio
    async def test_initialize_success(self, connection_config):
        mock_client = MagicMock()
        mock_client.admin.command = AsyncMock(return_value={"ok": 1})

        with patch(
            "shopkeeper.core.connection.AsyncIOMotorClient", return_value=mock_client
        ) as client_cls:
            manager = ConnectionManager(**connection_config)
            await manager.initialize()

        assert manager.initialized
        assert manager.mongo_client is mock_client
        mock_client.__getitem__.assert_called_with("test_db")
        assert client_cls.call_args[1]["maxPoolSize"] == 10
        assert client_cls.call_args[1]["appname"] == "shopkeeper"

    @pytest.mark.asyncio
    async def test_initialize_twice_is_noop(self, connection_config):
        mock_client = MagicMock()
        mock_client.admin.command = AsyncMock(return_value={"ok": 1})

        with patch(
            "shopkeeper.core.connection.AsyncIOMotorClient", return_value=mock_client
        ) as client_cls:
            manager = ConnectionManager(**connection_config)
            await manager.initialize()
            await manager.initialize()

        assert client_cls.call_count == 1

    @pytest.mark.asyncio
    async def test_server_unreachable(self, connection_config):
        mock_client = MagicMock()
        mock_client.admin.command = AsyncMock(
            side_effect=ServerSelectionTimeoutError("No servers found")
        )

        with patch("shopkeeper.core.connection.AsyncIOMotorClient", return_value=mock_client):
            manager = ConnectionManager(**connection_config)
            with pytest.raises(InitializationError) as exc_info:
                await manager.initialize()

        assert "Failed to connect to MongoDB" in str(exc_info.value)
        assert exc_info.value.context["error_type"] == "ServerSelectionTimeoutError"
        assert not manager.initialized

    def test_mongo_db_before_initialize(self, connection_config):
        with pytest.raises(RuntimeError):
            ConnectionManager(**connection_config).mongo_db

    @pytest.mark.asyncio
    async def test_shutdown_closes_client(self, connection_config):
        mock_client = MagicMock()
        mock_client.admin.command = AsyncMock(return_value={"ok": 1})

        with patch("shopkeeper.core.connection.AsyncIOMotorClient", return_value=mock_client):
            manager = ConnectionManager(**connection_config)
            await manager.initialize()
            await manager.shutdown()
            await manager.shutdown()

        mock_client.close.assert_called_once()
        assert not manager.initialized
        assert manager.mongo_client is None

    def test_mongo_db_setter_marks_initialized(self, connection_config):
        manager = ConnectionManager(**connection_config)
        fake_db = MagicMock()
        manager.mongo_db = fake_db
        assert manager.initialized
        assert manager.mongo_db is fake_db
