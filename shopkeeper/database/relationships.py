"""
Relationship maintenance.

Relationship fields store the referenced records' ids as strings. Two-sided
relationships (``Shop.shopItems`` <-> ``ShopItem.shop``) are kept in step:
whenever one side of a record changes, the back field on each added or
removed target is updated to match. A target that can point at only one
record is first detached from its previous holder.

These writes run with the database's own privileges. Access control has
already been applied to the write that triggered them.
"""

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from ..exceptions import InvalidReferenceError, ShopkeeperError
from ..observability import record_operation
from ..schema import FieldDefinition, FieldType, ListDefinition, ListRegistry

logger = logging.getLogger(__name__)


def referenced_ids(value: Any) -> List[str]:
    """Ids held by a relationship value (single id, list of ids or None)."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def ids_query(ids: Iterable[str]) -> Dict[str, Any]:
    """Match records by id whether ``_id`` is stored as an ObjectId or a string."""
    candidates: List[Any] = []
    for record_id in ids:
        if ObjectId.is_valid(record_id):
            candidates.append(ObjectId(record_id))
        candidates.append(record_id)
    return {"_id": {"$in": candidates}}


class RelationshipKeeper:
    """
    Checks relationship targets and keeps back references consistent.

    Usage:
        keeper = RelationshipKeeper(mongo_db, registry)
        await keeper.check_targets(ShopItem, {"shop": shop_id})
        await keeper.link(ShopItem, item_id, before=None, after=document)
    """

    def __init__(self, db: AsyncIOMotorDatabase, registry: ListRegistry) -> None:
        self._db = db
        self._registry = registry

    def _collection(self, list_key: str):
        return self._db[self._registry.get(list_key).collection_name]

    async def _call(self, description: str, coro) -> Any:
        try:
            return await coro
        except PyMongoError as e:
            logger.exception(f"Failed to {description}")
            raise ShopkeeperError(
                f"Failed to {description}", context={"error_type": type(e).__name__}
            ) from e

    async def check_targets(
        self, definition: ListDefinition, document: Mapping[str, Any]
    ) -> None:
        """
        Raises:
            InvalidReferenceError: If a relationship in ``document`` names a
                record that does not exist
        """
        for f in definition.fields:
            if f.type is not FieldType.RELATIONSHIP or f.name not in document:
                continue
            wanted = set(referenced_ids(document[f.name]))
            if not wanted:
                continue
            found = await self._call(
                f"look up {f.ref_list} records",
                self._collection(f.ref_list).find(ids_query(wanted)).to_list(length=None),
            )
            missing = sorted(wanted - {str(d["_id"]) for d in found})
            if missing:
                raise InvalidReferenceError(definition.key, f.name, missing)

    async def link(
        self,
        definition: ListDefinition,
        record_id: Any,
        before: Optional[Mapping[str, Any]],
        after: Mapping[str, Any],
    ) -> None:
        """
        Bring back references in line after a record's relationships moved
        from ``before`` (None on insert) to ``after`` (empty on delete).
        """
        start_time = time.time()
        record_id = str(record_id)
        before = before or {}
        for f in definition.linked_fields:
            old = set(referenced_ids(before.get(f.name)))
            new = set(referenced_ids(after.get(f.name)))
            if old == new:
                continue
            if old - new:
                await self._detach(f, record_id, old - new)
            if new - old:
                await self._attach(definition, f, record_id, new - old)
        record_operation(
            "relationships.link", (time.time() - start_time) * 1000, list=definition.key
        )

    async def unlink(self, definition: ListDefinition, record: Mapping[str, Any]) -> None:
        """Remove a deleted record from every back reference that named it."""
        await self.link(definition, record["_id"], before=record, after={})

    async def _detach(self, f: FieldDefinition, record_id: str, target_ids: Set[str]) -> None:
        back = self._registry.get(f.ref_list).field(f.ref_field)
        targets = self._collection(f.ref_list)
        if back.many:
            update = targets.update_many(ids_query(target_ids), {"$pull": {back.name: record_id}})
        else:
            update = targets.update_many(
                {"$and": [ids_query(target_ids), {back.name: record_id}]},
                {"$unset": {back.name: ""}},
            )
        await self._call(f"detach {f.ref_list}.{back.name}", update)

    async def _attach(
        self,
        definition: ListDefinition,
        f: FieldDefinition,
        record_id: str,
        target_ids: Set[str],
    ) -> None:
        back = self._registry.get(f.ref_list).field(f.ref_field)
        targets = self._collection(f.ref_list)
        if back.many:
            await self._call(
                f"attach {f.ref_list}.{back.name}",
                targets.update_many(ids_query(target_ids), {"$addToSet": {back.name: record_id}}),
            )
            return

        # single-valued back field: the target leaves whichever record held it
        current = await self._call(
            f"look up {f.ref_list} records",
            targets.find(ids_query(target_ids)).to_list(length=None),
        )
        holders = self._db[definition.collection_name]
        for target in current:
            previous = target.get(back.name)
            if previous is None or str(previous) == record_id:
                continue
            target_id = str(target["_id"])
            if f.many:
                release = holders.update_one(
                    ids_query([str(previous)]), {"$pull": {f.name: target_id}}
                )
            else:
                release = holders.update_one(
                    {"$and": [ids_query([str(previous)]), {f.name: target_id}]},
                    {"$unset": {f.name: ""}},
                )
            await self._call(f"release {definition.key}.{f.name}", release)

        await self._call(
            f"attach {f.ref_list}.{back.name}",
            targets.update_many(ids_query(target_ids), {"$set": {back.name: record_id}}),
        )
