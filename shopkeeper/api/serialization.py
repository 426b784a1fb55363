"""
Record serialization for API responses.
"""

from typing import Any, Dict, Mapping

from bson import ObjectId

from ..schema import ListDefinition


def _plain(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def serialize_record(definition: ListDefinition, document: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Public view of a stored record: ``id``, declared non-secret fields and
    the display label under ``_label_``. Password fields are never emitted.
    """
    record: Dict[str, Any] = {"id": _plain(document.get("_id", document.get("id")))}
    secret = set(definition.secret_fields)
    for name in definition.field_names:
        if name in secret:
            continue
        record[name] = _plain(document.get(name))
    record["_label_"] = definition.label_for(record)
    return record
