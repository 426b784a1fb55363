"""
JSON list manifests.

Lists can be declared in JSON instead of Python:

    {
      "key": "Shop",
      "labelField": "name",
      "fields": {
        "name": {"type": "Text"},
        "user": {"type": "Relationship", "ref": "User"}
      },
      "access": {
        "create": "allow",
        "read": "is_administrator_or_owner",
        "update": "is_administrator_or_owner",
        "delete": "is_administrator_or_owner"
      }
    }

Access rules are referenced by name (see ``shopkeeper.access.NAMED_RULES``);
the schema does not admit JSON booleans in access slots.

This module is part of Shopkeeper.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from jsonschema import SchemaError, ValidationError, validate

from ..access import NAMED_RULES, ListAccess
from ..exceptions import ListDefinitionError
from .fields import FieldDefinition, FieldType
from .lists import ListDefinition, ListRegistry

logger = logging.getLogger(__name__)

_RULE_SCHEMA = {"type": "string", "enum": sorted(NAMED_RULES)}

LIST_MANIFEST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "key": {
            "type": "string",
            "pattern": "^[A-Z][A-Za-z0-9]*$",
            "description": "List key (PascalCase)",
        },
        "label": {"type": "string", "minLength": 1},
        "labelField": {"type": "string", "minLength": 1},
        "fields": {
            "type": "object",
            "minProperties": 1,
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "type": {"type": "string", "enum": [t.value for t in FieldType]},
                    "isRequired": {"type": "boolean"},
                    "isUnique": {"type": "boolean"},
                    "ref": {"type": "string", "pattern": "^[A-Z][A-Za-z0-9]*(\\.[A-Za-z0-9_]+)?$"},
                    "many": {"type": "boolean"},
                    "options": {
                        "type": "array",
                        "items": {"type": "string"},
                        "minItems": 1,
                    },
                },
                "required": ["type"],
                "additionalProperties": False,
            },
        },
        "access": {
            "type": "object",
            "properties": {
                "create": _RULE_SCHEMA,
                "read": _RULE_SCHEMA,
                "update": _RULE_SCHEMA,
                "delete": _RULE_SCHEMA,
                "intended_create": _RULE_SCHEMA,
            },
            "required": ["create", "read", "update", "delete"],
            "additionalProperties": False,
        },
    },
    "required": ["key", "fields", "access"],
    "additionalProperties": False,
}


def validate_list_manifest(
    manifest: Dict[str, Any]
) -> Tuple[bool, Optional[str], Optional[List[str]]]:
    """
    Validate a list manifest against ``LIST_MANIFEST_SCHEMA``.

    Returns:
        Tuple of (is_valid, error_message, error_paths)
    """
    try:
        validate(instance=manifest, schema=LIST_MANIFEST_SCHEMA)
    except ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) or "<root>"
        logger.debug(f"List manifest validation failed at {path}: {e.message}")
        return False, e.message, [path]
    except SchemaError as e:
        logger.exception("List manifest schema is invalid")
        return False, f"Invalid schema: {e.message}", None
    return True, None, None


def list_from_manifest(manifest: Dict[str, Any]) -> ListDefinition:
    """
    Build a ListDefinition from a validated manifest.

    Raises:
        ListDefinitionError: If the manifest is invalid
    """
    is_valid, error, paths = validate_list_manifest(manifest)
    if not is_valid:
        raise ListDefinitionError(
            f"List manifest validation failed: {error}",
            list_name=manifest.get("key") if isinstance(manifest, dict) else None,
            error_paths=paths,
        )

    key = manifest["key"]
    fields = []
    for name, spec in manifest["fields"].items():
        try:
            fields.append(
                FieldDefinition(
                    name=name,
                    type=FieldType(spec["type"]),
                    is_required=spec.get("isRequired", False),
                    is_unique=spec.get("isUnique", False),
                    ref=spec.get("ref"),
                    many=spec.get("many", False),
                    options=tuple(spec.get("options", ())),
                )
            )
        except ValueError as e:
            raise ListDefinitionError(
                str(e), list_name=key, error_paths=[f"fields.{name}"]
            ) from e

    return ListDefinition(
        key=key,
        fields=tuple(fields),
        access=ListAccess.from_mapping(manifest["access"]),
        label_field=manifest.get("labelField"),
        label=manifest.get("label"),
    )


def load_lists_from_file(
    path: Union[str, Path], registry: Optional[ListRegistry] = None
) -> ListRegistry:
    """
    Register every list declared in a JSON file (an object or an array of
    objects) and check relationship references.

    Nothing is registered unless every list in the file is valid.
    """
    path_obj = Path(path)
    if not path_obj.exists():
        raise FileNotFoundError(f"List manifest file not found: {path_obj}")

    data = json.loads(path_obj.read_text(encoding="utf-8"))
    manifests = data if isinstance(data, list) else [data]

    registry = registry if registry is not None else ListRegistry()
    staged = registry.copy()
    added = [staged.create_list(list_from_manifest(m)) for m in manifests]
    staged.validate_references()
    for definition in added:
        registry.create_list(definition)
    return registry
