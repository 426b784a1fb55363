"""
Engine

The orchestration object that owns:
- the MongoDB connection
- the list registry
- the password authentication strategy
- subject resolution and access-scoped database handles

This module is part of Shopkeeper.
"""

import logging
import time
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import OperationFailure, PyMongoError

from ..access import Subject
from ..auth import PasswordAuthStrategy
from ..config import ShopkeeperConfig
from ..database import ScopedDatabase
from ..exceptions import InitializationError
from ..observability import get_logger as get_contextual_logger
from ..observability import (get_metrics_collector, record_operation,
                             timed_operation)
from ..schema import ListRegistry, default_registry
from .connection import ConnectionManager

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class ShopkeeperEngine:
    """
    Shopkeeper engine.

    Usage:
        engine = ShopkeeperEngine(ShopkeeperConfig())
        async with engine:
            db = engine.scoped_db(subject)
            shops = await db["Shop"].find()
    """

    def __init__(
        self,
        config: ShopkeeperConfig,
        registry: Optional[ListRegistry] = None,
        auth_strategy: Optional[PasswordAuthStrategy] = None,
    ) -> None:
        """
        Args:
            config: Validated on initialize()
            registry: Lists to serve (defaults to the built-in lists)
            auth_strategy: Password strategy (defaults to User.email / User.password)
        """
        self.config = config
        self.registry = registry if registry is not None else default_registry()
        self.auth_strategy = auth_strategy or PasswordAuthStrategy(
            self.registry.get("User")
        )
        self.connection = ConnectionManager(
            mongo_uri=config.mongo_uri,
            db_name=config.db_name,
            max_pool_size=config.max_pool_size,
            min_pool_size=config.min_pool_size,
        )

    @property
    def initialized(self) -> bool:
        return self.connection.initialized

    @property
    def mongo_db(self) -> AsyncIOMotorDatabase:
        return self.connection.mongo_db

    async def initialize(self) -> None:
        """
        Validate configuration, connect, optionally drop the database and
        ensure unique indexes.

        Raises:
            ConfigurationError: If configuration is invalid
            InitializationError: If MongoDB is unreachable or index creation fails
        """
        start_time = time.time()
        self.config.validate()
        await self.connection.initialize()

        if self.config.drop_database:
            contextual_logger.warning(
                "Dropping database on start-up", extra={"db_name": self.config.db_name}
            )
            await self.connection.mongo_client.drop_database(self.config.db_name)

        await self._ensure_unique_indexes()
        duration_ms = (time.time() - start_time) * 1000
        record_operation("engine.initialize", duration_ms, success=True)
        contextual_logger.info(
            "Shopkeeper engine initialized",
            extra={"lists": self.registry.names(), "duration_ms": round(duration_ms, 2)},
        )

    @timed_operation("engine.ensure_unique_indexes")
    async def _ensure_unique_indexes(self) -> None:
        db = self.mongo_db
        for definition in self.registry:
            for field_name in definition.unique_fields:
                try:
                    await db[definition.collection_name].create_index(
                        field_name,
                        unique=True,
                        sparse=True,
                        name=f"{field_name}_unique",
                    )
                except OperationFailure as e:
                    logger.exception(
                        f"Failed to create unique index on "
                        f"{definition.collection_name}.{field_name}"
                    )
                    raise InitializationError(
                        f"Failed to create unique index on "
                        f"{definition.collection_name}.{field_name}",
                        db_name=self.config.db_name,
                    ) from e

    async def shutdown(self) -> None:
        await self.connection.shutdown()

    async def __aenter__(self) -> "ShopkeeperEngine":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    # -- per-request handles --------------------------------------------------

    def scoped_db(self, subject: Optional[Subject]) -> ScopedDatabase:
        """Database handle enforcing access control for ``subject``."""
        return ScopedDatabase(
            self.mongo_db,
            self.registry,
            subject,
            strict_create=self.config.strict_create_access,
        )

    async def authenticate(self, identity: str, secret: str) -> Optional[Dict[str, Any]]:
        return await self.auth_strategy.authenticate(self.mongo_db, identity, secret)

    async def load_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a User record by id, bypassing access control.

        Used to resolve the subject of a request; the result must never be
        returned to a client as-is.
        """
        users = self.mongo_db[self.registry.get("User").collection_name]
        try:
            key: Any = ObjectId(user_id)
        except (InvalidId, TypeError):
            key = user_id
        return await users.find_one({"_id": key})

    @timed_operation("auth.resolve_subject")
    async def resolve_subject(self, user_id: Optional[str]) -> Optional[Subject]:
        """
        Build the Subject for a token's user id, reading the admin flag from
        the stored record. Unknown users resolve to None.
        """
        if not user_id:
            return None
        try:
            user = await self.load_user(user_id)
        except PyMongoError:
            logger.exception("Failed to load user while resolving subject")
            raise
        if user is None:
            logger.info(f"Token refers to unknown user '{user_id}'")
            return None
        return Subject.from_user_document(user)

    async def ping(self) -> bool:
        """True if the database answers a ping."""
        try:
            await self.mongo_db.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    def get_metrics(self) -> Dict[str, Any]:
        return get_metrics_collector().get_summary()
