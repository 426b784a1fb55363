"""
Access-scoped MongoDB wrappers

Provides subject-bound proxies around Motor's `AsyncIOMotorDatabase` and
`AsyncIOMotorCollection`.

This module is part of Shopkeeper.

Core Features:
- `AccessScopedCollection`: Proxies one list's collection for one subject.
  Every call first evaluates the list's access table:
    * ``Deny`` raises `AccessDeniedError` before the driver is touched.
    * ``AllowIf(filter)`` is combined with the caller's filter under ``$and``
      (reads, updates, deletes) or checked against the new document
      (strict create).
    * ``Allow`` passes the caller's filter through unchanged.
- `ScopedDatabase`: Hands out `AccessScopedCollection` instances by list key,
  with a `RelationshipKeeper` that checks relationship targets and keeps
  two-sided relationships in step.

Decisions are evaluated on every call and never cached. Ownership is never
injected: a record's owner is whatever its ``user`` relationship holds.
"""

import logging
import time
from typing import Any, Dict, List, Mapping, Optional

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import (AutoReconnect, DuplicateKeyError,
                            InvalidOperation, OperationFailure)
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

from ..access import AllowIf, Decision, Operation, Subject
from ..auth.passwords import hash_password, is_password_hash
from ..constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from ..exceptions import (AccessDeniedError, DuplicateValueError,
                          ShopkeeperError)
from ..observability import log_list_operation, record_operation
from ..schema import ListDefinition, ListRegistry
from .relationships import RelationshipKeeper

logger = logging.getLogger(__name__)


class AccessScopedCollection:
    """
    Wraps an `AsyncIOMotorCollection` to enforce a list's access table for
    one subject.

    Password fields are hashed on every write. With a ``relationships``
    keeper, relationship targets must exist and back references follow
    every insert, update and delete.
    """

    __slots__ = (
        "_collection", "_definition", "_subject", "_strict_create", "_relationships"
    )

    def __init__(
        self,
        real_collection: AsyncIOMotorCollection,
        definition: ListDefinition,
        subject: Optional[Subject],
        strict_create: bool = False,
        relationships: Optional[RelationshipKeeper] = None,
    ):
        self._collection = real_collection
        self._definition = definition
        self._subject = subject
        self._strict_create = strict_create
        self._relationships = relationships

    @property
    def definition(self) -> ListDefinition:
        return self._definition

    @property
    def subject(self) -> Optional[Subject]:
        return self._subject

    def decide(self, operation: Operation) -> Decision:
        """Evaluate the access table for ``operation``; fresh on every call."""
        return self._definition.access.evaluate(
            operation, self._subject, strict=self._strict_create
        )

    def _deny(self, operation: Operation) -> AccessDeniedError:
        subject_id = self._subject.id if self._subject else None
        logger.info(
            f"Access denied: list={self._definition.key}, operation={operation.value}, "
            f"subject={subject_id or 'anonymous'}"
        )
        record_operation(
            "access.denied", 0.0, success=False,
            list=self._definition.key, operation=operation.value,
        )
        return AccessDeniedError(self._definition.key, operation.value, subject_id)

    def _scoped_filter(
        self, operation: Operation, filter: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Combines the caller's filter with the decision's row filter.

        Raises:
            AccessDeniedError: If the decision is Deny
        """
        decision = self.decide(operation)
        if decision.is_deny:
            raise self._deny(operation)

        if isinstance(decision, AllowIf):
            scope_filter = decision.filter.to_query()
            if not filter:
                return scope_filter
            return {"$and": [dict(filter), scope_filter]}

        return dict(filter or {})

    def _prepare_write(self, document: Mapping[str, Any]) -> Dict[str, Any]:
        """Non-mutating copy with password fields hashed."""
        prepared = dict(document)
        for name in self._definition.secret_fields:
            value = prepared.get(name)
            if value is not None and not is_password_hash(value):
                prepared[name] = hash_password(value)
        return prepared

    async def _run(self, operation_name: str, coro_factory, **context: Any) -> Any:
        start_time = time.time()
        list_key = self._definition.key
        try:
            result = await coro_factory()
        except (DuplicateKeyError, OperationFailure, AutoReconnect, InvalidOperation) as e:
            duration_ms = (time.time() - start_time) * 1000
            record_operation(
                f"database.{operation_name}", duration_ms, success=False, list=list_key
            )
            log_list_operation(
                logger, list_key, operation_name, success=False, duration_ms=duration_ms,
                error_type=type(e).__name__,
            )
            if isinstance(e, DuplicateKeyError):
                raise DuplicateValueError(
                    "A record with this unique value already exists",
                    context={"list": list_key, **context},
                ) from e
            raise ShopkeeperError(
                f"Failed to run {operation_name}",
                context={"operation": operation_name, "collection": self._collection.name},
            ) from e
        duration_ms = (time.time() - start_time) * 1000
        record_operation(f"database.{operation_name}", duration_ms, success=True, list=list_key)
        log_list_operation(logger, list_key, operation_name, duration_ms=duration_ms)
        return result

    # -- reads ----------------------------------------------------------------

    async def find(
        self,
        filter: Optional[Mapping[str, Any]] = None,
        skip: int = 0,
        limit: int = DEFAULT_PAGE_LIMIT,
        sort: Optional[List[Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Return up to ``limit`` readable records matching ``filter``."""
        scoped_filter = self._scoped_filter(Operation.READ, filter)
        limit = max(1, min(limit, MAX_PAGE_LIMIT))

        async def _query():
            cursor = self._collection.find(scoped_filter, skip=max(0, skip), limit=limit)
            if sort:
                cursor = cursor.sort(sort)
            return await cursor.to_list(length=limit)

        return await self._run("find", _query)

    async def find_one(
        self, filter: Optional[Mapping[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        scoped_filter = self._scoped_filter(Operation.READ, filter)
        return await self._run("find_one", lambda: self._collection.find_one(scoped_filter))

    async def count_documents(self, filter: Optional[Mapping[str, Any]] = None) -> int:
        scoped_filter = self._scoped_filter(Operation.READ, filter)
        return await self._run(
            "count_documents", lambda: self._collection.count_documents(scoped_filter)
        )

    # -- writes ---------------------------------------------------------------

    def _touches_links(self, changes: Mapping[str, Any]) -> bool:
        return self._relationships is not None and any(
            f.name in changes for f in self._definition.linked_fields
        )

    async def _check_targets(self, document: Mapping[str, Any]) -> None:
        if self._relationships is not None:
            await self._relationships.check_targets(self._definition, document)

    async def insert_one(self, document: Mapping[str, Any]) -> InsertOneResult:
        """
        Insert a record if create access allows it.

        An ``AllowIf`` create decision (strict mode) must be satisfied by the
        document itself; ownership is taken from the document as given.

        Raises:
            AccessDeniedError: If create access is denied
            InvalidReferenceError: If a relationship names a missing record
            DuplicateValueError: If a unique field is already taken
        """
        decision = self.decide(Operation.CREATE)
        if not decision.permits(document):
            raise self._deny(Operation.CREATE)

        doc_to_insert = self._prepare_write(document)
        await self._check_targets(doc_to_insert)
        result = await self._run(
            "insert_one", lambda: self._collection.insert_one(doc_to_insert)
        )
        if self._touches_links(doc_to_insert):
            await self._relationships.link(
                self._definition, result.inserted_id, None, doc_to_insert
            )
        return result

    async def find_one_and_update(
        self, filter: Mapping[str, Any], changes: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Apply ``$set`` of ``changes`` to one updatable record matching
        ``filter`` and return the record as written.

        The returned record is the one just updated even when the change
        takes it out of the subject's read scope (e.g. handing a shop to
        another user). None means no updatable record matched.
        """
        scoped_filter = self._scoped_filter(Operation.UPDATE, filter)
        prepared = self._prepare_write(changes)
        await self._check_targets(prepared)
        before = await self._run(
            "find_one_and_update",
            lambda: self._collection.find_one_and_update(
                scoped_filter, {"$set": prepared}, return_document=ReturnDocument.BEFORE
            ),
        )
        if before is None:
            return None
        after = {**before, **prepared}
        if self._touches_links(prepared):
            await self._relationships.link(self._definition, before["_id"], before, after)
        return after

    async def update_one(
        self, filter: Mapping[str, Any], changes: Mapping[str, Any]
    ) -> UpdateResult:
        """
        Apply ``$set`` of ``changes`` to one updatable record matching ``filter``.
        """
        if self._touches_links(changes):
            updated = await self.find_one_and_update(filter, changes)
            matched = int(updated is not None)
            return UpdateResult(
                {"n": matched, "nModified": matched, "ok": 1.0}, acknowledged=True
            )

        scoped_filter = self._scoped_filter(Operation.UPDATE, filter)
        update = {"$set": self._prepare_write(changes)}
        await self._check_targets(update["$set"])
        return await self._run(
            "update_one", lambda: self._collection.update_one(scoped_filter, update)
        )

    async def delete_one(self, filter: Mapping[str, Any]) -> DeleteResult:
        """
        Delete one deletable record matching ``filter``, removing it from
        the back references of its two-sided relationships.
        """
        scoped_filter = self._scoped_filter(Operation.DELETE, filter)
        if self._relationships is None or not self._definition.linked_fields:
            return await self._run(
                "delete_one", lambda: self._collection.delete_one(scoped_filter)
            )

        deleted = await self._run(
            "find_one_and_delete", lambda: self._collection.find_one_and_delete(scoped_filter)
        )
        if deleted is not None:
            await self._relationships.unlink(self._definition, deleted)
        return DeleteResult({"n": int(deleted is not None), "ok": 1.0}, acknowledged=True)


class ScopedDatabase:
    """
    Wraps an `AsyncIOMotorDatabase` to provide access-scoped list collections
    for a single subject.

    Usage:
        db = ScopedDatabase(mongo_db, registry, subject)
        shops = await db["Shop"].find()
    """

    __slots__ = ("_db", "_registry", "_subject", "_strict_create", "_relationships")

    def __init__(
        self,
        real_db: AsyncIOMotorDatabase,
        registry: ListRegistry,
        subject: Optional[Subject],
        strict_create: bool = False,
    ):
        self._db = real_db
        self._registry = registry
        self._subject = subject
        self._strict_create = strict_create
        self._relationships = RelationshipKeeper(real_db, registry)

    @property
    def subject(self) -> Optional[Subject]:
        return self._subject

    def get_collection(self, list_key: str) -> AccessScopedCollection:
        """
        Raises:
            KeyError: If ``list_key`` is not registered
        """
        definition = self._registry.get(list_key)
        return AccessScopedCollection(
            self._db[definition.collection_name],
            definition,
            self._subject,
            strict_create=self._strict_create,
            relationships=self._relationships,
        )

    def __getitem__(self, list_key: str) -> AccessScopedCollection:
        return self.get_collection(list_key)
