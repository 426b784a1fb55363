"""
Configuration management for Shopkeeper.

Values come from the environment; a ``.env`` file in the working directory
is loaded first (existing environment variables win over the file).
"""

import logging
import os

from dotenv import load_dotenv

from .constants import (ACCESS_TOKEN_TTL, DEFAULT_ADMIN_PATH, DEFAULT_DB_NAME,
                        DEFAULT_MAX_POOL_SIZE, DEFAULT_MIN_POOL_SIZE,
                        MIN_SECRET_KEY_LENGTH)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer", config_key=name, config_value=raw
        ) from e


class ShopkeeperConfig:
    """
    Shopkeeper configuration.

    Every argument defaults to its environment variable, so the common case
    is ``ShopkeeperConfig()``; tests and embedding code pass values directly.

    Example:
        config = ShopkeeperConfig()
        config.validate()
        engine = ShopkeeperEngine(config)
    """

    def __init__(
        self,
        mongo_uri: str | None = None,
        db_name: str | None = None,
        secret_key: str | None = None,
        admin_path: str | None = None,
        drop_database: bool | None = None,
        strict_create_access: bool | None = None,
        access_token_ttl: int | None = None,
        max_pool_size: int | None = None,
        min_pool_size: int | None = None,
    ):
        """
        Initialize configuration.

        Args:
            mongo_uri: MongoDB connection URI (MONGO_URI, falling back to DATABASE_URL)
            db_name: Database name (DB_NAME, default "shopkeeper")
            secret_key: JWT signing key (SECRET_KEY)
            admin_path: Mount point of the admin API (ADMIN_PATH, default "/admin")
            drop_database: Drop the database on start-up (DROP_DATABASE, default false)
            strict_create_access: Evaluate the owner predicate on create instead of
                allowing every create (STRICT_CREATE_ACCESS, default false)
            access_token_ttl: Session token lifetime in seconds (ACCESS_TOKEN_TTL)
            max_pool_size: Maximum connection pool size (MONGO_MAX_POOL_SIZE)
            min_pool_size: Minimum connection pool size (MONGO_MIN_POOL_SIZE)
        """
        self.mongo_uri = mongo_uri or os.getenv("MONGO_URI") or os.getenv("DATABASE_URL", "")
        self.db_name = db_name or os.getenv("DB_NAME", DEFAULT_DB_NAME)
        self.secret_key = secret_key or os.getenv("SECRET_KEY", "")
        self.admin_path = admin_path or os.getenv("ADMIN_PATH", DEFAULT_ADMIN_PATH)
        self.drop_database = (
            drop_database if drop_database is not None else _env_bool("DROP_DATABASE", False)
        )
        self.strict_create_access = (
            strict_create_access
            if strict_create_access is not None
            else _env_bool("STRICT_CREATE_ACCESS", False)
        )
        self.access_token_ttl = (
            access_token_ttl
            if access_token_ttl is not None
            else _env_int("ACCESS_TOKEN_TTL", ACCESS_TOKEN_TTL)
        )
        self.max_pool_size = (
            max_pool_size
            if max_pool_size is not None
            else _env_int("MONGO_MAX_POOL_SIZE", DEFAULT_MAX_POOL_SIZE)
        )
        self.min_pool_size = (
            min_pool_size
            if min_pool_size is not None
            else _env_int("MONGO_MIN_POOL_SIZE", DEFAULT_MIN_POOL_SIZE)
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        if not self.mongo_uri:
            raise ConfigurationError(
                "mongo_uri is required (set MONGO_URI or DATABASE_URL, or pass directly)",
                config_key="MONGO_URI",
            )

        if not self.secret_key:
            raise ConfigurationError(
                "SECRET_KEY is required to sign session tokens",
                config_key="SECRET_KEY",
            )

        if len(self.secret_key) < MIN_SECRET_KEY_LENGTH:
            logger.warning(
                f"SECRET_KEY is only {len(self.secret_key)} characters. "
                f"Recommendation: Use at least {MIN_SECRET_KEY_LENGTH} characters for production."
            )

        if not self.admin_path.startswith("/"):
            raise ConfigurationError(
                "admin_path must start with '/'",
                config_key="ADMIN_PATH",
                config_value=self.admin_path,
            )

        if self.access_token_ttl < 1:
            raise ConfigurationError(
                f"access_token_ttl must be >= 1, got {self.access_token_ttl}",
                config_key="ACCESS_TOKEN_TTL",
                config_value=self.access_token_ttl,
            )

        if self.max_pool_size < 1:
            raise ConfigurationError(
                f"max_pool_size must be >= 1, got {self.max_pool_size}",
                config_key="MONGO_MAX_POOL_SIZE",
                config_value=self.max_pool_size,
            )

        if self.min_pool_size < 1:
            raise ConfigurationError(
                f"min_pool_size must be >= 1, got {self.min_pool_size}",
                config_key="MONGO_MIN_POOL_SIZE",
                config_value=self.min_pool_size,
            )

        if self.min_pool_size > self.max_pool_size:
            raise ConfigurationError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})",
                config_key="MONGO_MIN_POOL_SIZE",
                config_value=self.min_pool_size,
            )

    def __repr__(self) -> str:
        return (
            f"ShopkeeperConfig(db_name={self.db_name!r}, admin_path={self.admin_path!r}, "
            f"drop_database={self.drop_database}, "
            f"strict_create_access={self.strict_create_access})"
        )
