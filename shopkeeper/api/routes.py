"""
CRUD routes generated per list.

Each registered list gets a router under ``/api/{path}``. Every handler
goes through the access-scoped collection, so denial surfaces as
`AccessDeniedError` (mapped to 403 by the app) and row filters narrow
what a subject can see or change.

This module is part of Shopkeeper.
"""

import logging
from typing import Any, Dict, Type

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from ..access import FieldEquals
from ..constants import DEFAULT_PAGE_LIMIT, IDENTITY_FIELD, MAX_PAGE_LIMIT
from ..database import ScopedDatabase
from ..schema import ListDefinition
from .dependencies import get_scoped_db
from .serialization import serialize_record

logger = logging.getLogger(__name__)


def _by_id(record_id: str) -> Dict[str, Any]:
    return FieldEquals(IDENTITY_FIELD, record_id).to_query()


def _validate_payload(model: Type[BaseModel], payload: Dict[str, Any]) -> Dict[str, Any]:
    try:
        validated = model.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e
    return validated.model_dump(exclude_unset=True)


def build_list_router(definition: ListDefinition) -> APIRouter:
    """
    Router exposing list, read, create, update and delete for one list.
    """
    router = APIRouter(prefix=f"/{definition.path}", tags=[definition.key])
    create_model = definition.input_model()
    update_model = definition.input_model(partial=True)

    @router.get("")
    async def list_records(
        skip: int = Query(0, ge=0),
        limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
        db: ScopedDatabase = Depends(get_scoped_db),
    ) -> Dict[str, Any]:
        collection = db[definition.key]
        records = await collection.find(skip=skip, limit=limit)
        count = await collection.count_documents()
        return {
            "items": [serialize_record(definition, r) for r in records],
            "count": count,
        }

    @router.get("/{record_id}")
    async def read_record(
        record_id: str, db: ScopedDatabase = Depends(get_scoped_db)
    ) -> Dict[str, Any]:
        record = await db[definition.key].find_one(_by_id(record_id))
        if record is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{definition.key} '{record_id}' not found",
            )
        return serialize_record(definition, record)

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_record(
        payload: Dict[str, Any] = Body(...),
        db: ScopedDatabase = Depends(get_scoped_db),
    ) -> Dict[str, Any]:
        document = _validate_payload(create_model, payload)
        result = await db[definition.key].insert_one(document)
        logger.info(f"Created {definition.key} '{result.inserted_id}'")
        return serialize_record(definition, {**document, "_id": result.inserted_id})

    @router.patch("/{record_id}")
    async def update_record(
        record_id: str,
        payload: Dict[str, Any] = Body(...),
        db: ScopedDatabase = Depends(get_scoped_db),
    ) -> Dict[str, Any]:
        changes = _validate_payload(update_model, payload)
        if not changes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No fields to update",
            )
        record = await db[definition.key].find_one_and_update(_by_id(record_id), changes)
        if record is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{definition.key} '{record_id}' not found",
            )
        return serialize_record(definition, record)

    @router.delete("/{record_id}")
    async def delete_record(
        record_id: str, db: ScopedDatabase = Depends(get_scoped_db)
    ) -> Dict[str, Any]:
        result = await db[definition.key].delete_one(_by_id(record_id))
        if result.deleted_count == 0:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{definition.key} '{record_id}' not found",
            )
        logger.info(f"Deleted {definition.key} '{record_id}'")
        return {"id": record_id, "deleted": True}

    return router
