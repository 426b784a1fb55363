"""
Pytest configuration and shared fixtures for Shopkeeper tests.

This module provides:
- Mock Motor collection fixtures
- Subjects (anonymous, owner, other user, administrator)
- An in-memory collection double for API tests
- Engine and FastAPI TestClient fixtures
"""

import copy
import os
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import DuplicateKeyError

# Set test secret key before importing engine components
TEST_SECRET_KEY = "test_secret_key_for_testing_only_" + "x" * 32
os.environ.setdefault("SECRET_KEY", TEST_SECRET_KEY)

from fastapi.testclient import TestClient

from shopkeeper.access import Subject
from shopkeeper.api import create_app
from shopkeeper.auth import create_session_token, hash_password
from shopkeeper.config import ShopkeeperConfig
from shopkeeper.core import ShopkeeperEngine

# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


@pytest.fixture
def mock_cursor() -> MagicMock:
    """Cursor returned by find(); sort() chains, to_list() is awaited."""
    cursor = MagicMock()
    cursor.sort = MagicMock(return_value=cursor)
    cursor.to_list = AsyncMock(return_value=[])
    return cursor


@pytest.fixture
def mock_mongo_collection(mock_cursor: MagicMock) -> MagicMock:
    """Create a mock Motor collection."""
    collection = MagicMock(spec=AsyncIOMotorCollection)
    collection.name = "shops"
    collection.find = MagicMock(return_value=mock_cursor)
    collection.find_one = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(return_value=0)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="new_id"))
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1, modified_count=1))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.update_many = AsyncMock(return_value=MagicMock(matched_count=0))
    collection.create_index = AsyncMock(return_value="test_index")
    return collection


# ============================================================================
# SUBJECTS
# ============================================================================


@pytest.fixture
def owner_subject() -> Subject:
    return Subject(id="u1", is_admin=False, email="u1@example.com")


@pytest.fixture
def other_subject() -> Subject:
    return Subject(id="u2", is_admin=False, email="u2@example.com")


@pytest.fixture
def admin_subject() -> Subject:
    return Subject(id="admin", is_admin=True, email="admin@example.com")


# ============================================================================
# IN-MEMORY DATABASE
# ============================================================================


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$in":
                if not any(_matches_condition(value, candidate) for candidate in operand):
                    return False
            elif op == "$eq":
                if not _matches_condition(value, operand):
                    return False
            elif op == "$ne":
                if _matches_condition(value, operand):
                    return False
            else:
                raise NotImplementedError(f"Operator {op} not supported by FakeCollection")
        return True
    if isinstance(value, list) and not isinstance(condition, list):
        return condition in value
    return value == condition


def matches_filter(document: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    """Minimal MongoDB filter semantics: equality, $and, $or, $in, $eq, $ne."""
    for key, condition in (filter or {}).items():
        if key == "$and":
            if not all(matches_filter(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches_filter(document, sub) for sub in condition):
                return False
        elif not _matches_condition(document.get(key), condition):
            return False
    return True


class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents

    def sort(self, key_or_list, direction=None):
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction or 1)]
        for key, order in reversed(keys):
            self._documents.sort(key=lambda d: (d.get(key) is None, d.get(key)), reverse=order < 0)
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._documents[:length] if length else list(self._documents)


class FakeCollection:
    """In-memory stand-in for an AsyncIOMotorCollection."""

    def __init__(self, name: str):
        self.name = name
        self.documents: List[Dict[str, Any]] = []
        self.unique_fields: List[str] = []

    def seed(self, document: Dict[str, Any]) -> Any:
        """Synchronous insert for test setup."""
        return self._insert(document)

    def _insert(self, document: Dict[str, Any]) -> Any:
        doc = copy.deepcopy(document)
        doc.setdefault("_id", ObjectId())
        for field in self.unique_fields:
            value = doc.get(field)
            if value is not None and any(d.get(field) == value for d in self.documents):
                raise DuplicateKeyError(f"E11000 duplicate key error: {field}", code=11000)
        self.documents.append(doc)
        return doc["_id"]

    def find(self, filter=None, skip: int = 0, limit: int = 0) -> FakeCursor:
        found = [copy.deepcopy(d) for d in self.documents if matches_filter(d, filter)]
        found = found[skip:]
        if limit:
            found = found[:limit]
        return FakeCursor(found)

    async def find_one(self, filter=None):
        for doc in self.documents:
            if matches_filter(doc, filter):
                return copy.deepcopy(doc)
        return None

    async def count_documents(self, filter=None) -> int:
        return sum(1 for d in self.documents if matches_filter(d, filter))

    async def insert_one(self, document):
        return SimpleNamespace(inserted_id=self._insert(document), acknowledged=True)

    def _apply(self, doc: Dict[str, Any], update: Dict[str, Any]) -> None:
        for op, fields in update.items():
            for key, value in copy.deepcopy(fields).items():
                if op == "$set":
                    doc[key] = value
                elif op == "$unset":
                    doc.pop(key, None)
                elif op == "$addToSet":
                    current = doc.setdefault(key, []) or []
                    if value not in current:
                        current.append(value)
                    doc[key] = current
                elif op == "$pull":
                    doc[key] = [v for v in doc.get(key) or [] if v != value]
                else:
                    raise NotImplementedError(f"Update operator {op} not supported")

    async def update_one(self, filter, update):
        for doc in self.documents:
            if matches_filter(doc, filter):
                self._apply(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def update_many(self, filter, update):
        matched = [doc for doc in self.documents if matches_filter(doc, filter)]
        for doc in matched:
            self._apply(doc, update)
        return SimpleNamespace(matched_count=len(matched), modified_count=len(matched))

    async def find_one_and_update(self, filter, update, return_document=False):
        for doc in self.documents:
            if matches_filter(doc, filter):
                before = copy.deepcopy(doc)
                self._apply(doc, update)
                return copy.deepcopy(doc) if return_document else before
        return None

    async def delete_one(self, filter):
        deleted = await self.find_one_and_delete(filter)
        return SimpleNamespace(deleted_count=int(deleted is not None))

    async def find_one_and_delete(self, filter):
        for i, doc in enumerate(self.documents):
            if matches_filter(doc, filter):
                return self.documents.pop(i)
        return None

    async def create_index(self, keys, unique: bool = False, **kwargs):
        if unique:
            self.unique_fields.append(keys)
        return kwargs.get("name", f"{keys}_1")


class FakeDatabase:
    """In-memory stand-in for an AsyncIOMotorDatabase."""

    def __init__(self, name: str = "shopkeeper_test"):
        self.name = name
        self._collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    async def command(self, name: str):
        return {"ok": 1}


@pytest.fixture
def fake_db() -> FakeDatabase:
    db = FakeDatabase()
    db["users"].unique_fields.append("email")
    return db


# ============================================================================
# ENGINE / APP FIXTURES
# ============================================================================


@pytest.fixture
def test_config() -> ShopkeeperConfig:
    return ShopkeeperConfig(
        mongo_uri="mongodb://localhost:27017",
        db_name="shopkeeper_test",
        secret_key=TEST_SECRET_KEY,
    )


@pytest.fixture
def engine(test_config: ShopkeeperConfig, fake_db: FakeDatabase) -> ShopkeeperEngine:
    """Engine wired to the in-memory database."""
    shopkeeper_engine = ShopkeeperEngine(test_config)
    shopkeeper_engine.connection.mongo_db = fake_db
    return shopkeeper_engine


@pytest.fixture
def api_client(engine: ShopkeeperEngine):
    with TestClient(create_app(engine)) as client:
        yield client


@pytest.fixture
def seed_user(fake_db: FakeDatabase):
    """Insert a User record and return ``(document, auth_headers)``."""

    def _seed(email: str, password: str = "s3cret-pass", is_admin: bool = False, name=None):
        document = {
            "name": name or email.split("@")[0],
            "email": email,
            "password": hash_password(password),
            "isAdmin": is_admin,
        }
        document["_id"] = fake_db["users"].seed(document)
        token = create_session_token(document, TEST_SECRET_KEY)
        return document, {"Authorization": f"Bearer {token}"}

    return _seed
