"""
Password authentication strategy.

Users sign in with the identity field (``email``) and secret field
(``password``) of the User list. Stored secrets are bcrypt hashes; a record
holding anything else can never sign in.

This module is part of Shopkeeper.
"""

import logging
import time
from typing import Any, Dict, Optional

import bcrypt
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from ..exceptions import AuthenticationError, ShopkeeperError
from ..observability import record_operation
from ..schema import ListDefinition
from ..schema import User as UserList

logger = logging.getLogger(__name__)

_BCRYPT_PREFIXES = (b"$2a$", b"$2b$", b"$2y$")


def hash_password(plain: str) -> str:
    """Hash a plain-text password with bcrypt."""
    if not isinstance(plain, str) or not plain:
        raise ValueError("Password must be a non-empty string")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def is_password_hash(value: Any) -> bool:
    if isinstance(value, str):
        value = value.encode("utf-8")
    return isinstance(value, bytes) and value.startswith(_BCRYPT_PREFIXES)


def verify_password(plain: str, stored: Any) -> bool:
    """
    Check ``plain`` against a stored bcrypt hash.

    Returns False (never raises) for non-bcrypt or malformed hashes.
    """
    if not plain or not is_password_hash(stored):
        return False
    if isinstance(stored, str):
        stored = stored.encode("utf-8")
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), stored)
    except ValueError:
        logger.warning("Stored password hash is malformed; rejecting sign-in")
        return False


class PasswordAuthStrategy:
    """
    Authenticates against a list's identity and secret fields.

    Usage:
        strategy = PasswordAuthStrategy()
        user = await strategy.authenticate(db, "ada@example.com", "hunter2")
    """

    def __init__(
        self,
        list_definition: ListDefinition = UserList,
        identity_field: str = "email",
        secret_field: str = "password",
    ) -> None:
        if list_definition.field(identity_field) is None:
            raise AuthenticationError(
                f"List '{list_definition.key}' has no identity field '{identity_field}'"
            )
        secret = list_definition.field(secret_field)
        if secret is None or not secret.is_secret:
            raise AuthenticationError(
                f"List '{list_definition.key}' has no Password field '{secret_field}'"
            )
        self.list_definition = list_definition
        self.identity_field = identity_field
        self.secret_field = secret_field

    async def authenticate(
        self, db: AsyncIOMotorDatabase, identity: str, secret: str
    ) -> Optional[Dict[str, Any]]:
        """
        Look up the record by identity and verify the secret.

        Returns:
            The stored record on success, None on unknown identity or wrong secret

        Raises:
            ShopkeeperError: If the database lookup fails
        """
        start_time = time.time()
        if not identity or not secret:
            return None

        collection = db[self.list_definition.collection_name]
        try:
            record = await collection.find_one({self.identity_field: identity})
        except PyMongoError as e:
            record_operation("auth.authenticate", (time.time() - start_time) * 1000, success=False)
            logger.exception("Database error during sign-in lookup")
            raise ShopkeeperError(
                "Failed to look up user for sign-in",
                context={"list": self.list_definition.key},
            ) from e

        verified = record is not None and verify_password(secret, record.get(self.secret_field))
        record_operation(
            "auth.authenticate", (time.time() - start_time) * 1000, success=verified
        )
        if not verified:
            logger.info(f"Sign-in rejected for '{identity}'")
            return None

        logger.info(f"Sign-in succeeded for '{identity}'")
        return record
