"""
Fixtures for integration tests against a real MongoDB (via testcontainers).
"""

import os

import pytest

from shopkeeper.config import ShopkeeperConfig
from shopkeeper.core import ShopkeeperEngine

INTEGRATION_SECRET_KEY = "integration-secret-key-0123456789abcdef"


@pytest.fixture(scope="session")
def mongodb_container():
    """
    Start a MongoDB container for integration tests.

    Session-scoped: the container starts once and is reused.
    """
    try:
        from testcontainers.mongodb import MongoDbContainer
    except ImportError:
        pytest.skip("testcontainers not installed. Install with: pip install -e '.[test]'")

    with MongoDbContainer(image="mongo:7") as container:
        yield container


@pytest.fixture
def mongodb_connection_string(mongodb_container):
    exposed_port = mongodb_container.get_exposed_port(27017)
    return f"mongodb://localhost:{exposed_port}/?directConnection=true"


@pytest.fixture
async def real_engine(mongodb_connection_string):
    """
    Fully initialized engine on a throwaway database, dropped afterwards.
    """
    config = ShopkeeperConfig(
        mongo_uri=mongodb_connection_string,
        db_name=f"shopkeeper_test_{os.getpid()}",
        secret_key=INTEGRATION_SECRET_KEY,
        max_pool_size=5,
        min_pool_size=1,
    )
    engine = ShopkeeperEngine(config)
    await engine.initialize()
    yield engine
    await engine.connection.mongo_client.drop_database(config.db_name)
    await engine.shutdown()
