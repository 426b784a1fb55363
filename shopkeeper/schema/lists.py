"""
List definitions and the list registry.

A list is a declared model: a key (``ShopItem``), its fields, its access
table and how records are labelled in the admin client. Definitions are
immutable; the registry validates them once, at registration, so that
request handling never meets a malformed declaration.

This module is part of Shopkeeper.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import (Any, Callable, Dict, Iterator, List, Mapping, Optional,
                    Tuple, Type)

from pydantic import BaseModel, ConfigDict, create_model

from ..access import ListAccess
from ..constants import OWNER_FIELD
from ..exceptions import ListDefinitionError
from .fields import FieldDefinition, FieldType

logger = logging.getLogger(__name__)

_LIST_KEY_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")


def _pluralize(word: str) -> str:
    lower = word.lower()
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    return word + "s"


def _split_words(key: str) -> List[str]:
    return re.findall(r"[A-Z][a-z0-9]*", key)


@dataclass(frozen=True)
class ListDefinition:
    key: str
    fields: Tuple[FieldDefinition, ...]
    access: ListAccess
    label_field: Optional[str] = None
    label: Optional[str] = None
    label_resolver: Optional[Callable[[Mapping[str, Any]], str]] = None

    def __post_init__(self) -> None:
        if not _LIST_KEY_RE.match(self.key):
            raise ListDefinitionError(
                f"List key '{self.key}' must be PascalCase alphanumeric", list_name=self.key
            )
        names = [f.name for f in self.fields]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ListDefinitionError(
                f"Duplicate field(s): {', '.join(duplicates)}", list_name=self.key
            )
        if "id" in names or "_id" in names:
            raise ListDefinitionError("Field name 'id' is reserved", list_name=self.key)
        if self.label_field and self.label_field not in names:
            raise ListDefinitionError(
                f"label_field '{self.label_field}' is not a field of the list",
                list_name=self.key,
            )
        if not isinstance(self.access, ListAccess):
            raise ListDefinitionError(
                "access must be a ListAccess table", list_name=self.key
            )

    # -- naming ---------------------------------------------------------------

    @property
    def plural(self) -> str:
        words = _split_words(self.key)
        words[-1] = _pluralize(words[-1])
        return "".join(words)

    @property
    def collection_name(self) -> str:
        """MongoDB collection, e.g. ``shop_items``."""
        return "_".join(w.lower() for w in _split_words(self.plural))

    @property
    def path(self) -> str:
        """URL segment, e.g. ``shop-items``."""
        return "-".join(w.lower() for w in _split_words(self.plural))

    # -- fields ---------------------------------------------------------------

    def field(self, name: str) -> Optional[FieldDefinition]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def secret_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.is_secret]

    @property
    def unique_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.is_unique]

    @property
    def linked_fields(self) -> List[FieldDefinition]:
        """Two-sided relationships (``ref="List.backField"``)."""
        return [f for f in self.fields if f.ref_field is not None]

    @property
    def owner_field(self) -> Optional[str]:
        """The owner relationship (``user -> User``), if the list declares one."""
        f = self.field(OWNER_FIELD)
        if f is not None and f.type is FieldType.RELATIONSHIP and f.ref_list == "User":
            return f.name
        return None

    # -- presentation ---------------------------------------------------------

    def label_for(self, document: Mapping[str, Any]) -> str:
        """
        Display label of a record: the resolver, then the label field, then
        the static label, then the record id.
        """
        if self.label_resolver is not None:
            return str(self.label_resolver(document))
        if self.label_field and document.get(self.label_field) not in (None, ""):
            return str(document[self.label_field])
        if self.label:
            return self.label
        return str(document.get("id", document.get("_id", "")))

    def input_model(self, partial: bool = False) -> Type[BaseModel]:
        """
        Pydantic model validating write payloads.

        Args:
            partial: Every field may be omitted (PATCH semantics). Required
                fields still reject an explicit null; callers dump with
                ``exclude_unset`` so omitted fields never reach the update.
                Otherwise only ``is_required`` fields are mandatory.
        """
        definitions: Dict[str, Any] = {}
        for f in self.fields:
            py_type = f.python_type()
            if not f.is_required:
                definitions[f.name] = (Optional[py_type], None)
            elif partial:
                definitions[f.name] = (py_type, None)
            else:
                definitions[f.name] = (py_type, ...)
        suffix = "Update" if partial else "Create"
        return create_model(
            f"{self.key}{suffix}",
            __config__=ConfigDict(extra="forbid"),
            **definitions,
        )

    def describe(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "plural": self.plural,
            "path": self.path,
            "label": self.label or self.key,
            "labelField": self.label_field,
            "ownerField": self.owner_field,
            "fields": [f.describe() for f in self.fields],
        }


class ListRegistry:
    """
    Registered lists, addressable by key or URL path.

    Usage:
        registry = ListRegistry()
        registry.create_list(shop_definition)
        registry.get("Shop").collection_name  # "shops"
    """

    def __init__(self) -> None:
        self._lists: Dict[str, ListDefinition] = {}
        self._by_path: Dict[str, ListDefinition] = {}

    def create_list(self, definition: ListDefinition) -> ListDefinition:
        """
        Register a list.

        Raises:
            ListDefinitionError: If the key or URL path is already registered
        """
        if not isinstance(definition, ListDefinition):
            raise ListDefinitionError(
                f"Expected ListDefinition, got {type(definition).__name__}"
            )
        if definition.key in self._lists:
            raise ListDefinitionError(
                f"List '{definition.key}' is already registered", list_name=definition.key
            )
        if definition.path in self._by_path:
            raise ListDefinitionError(
                f"Path '{definition.path}' is already used by "
                f"'{self._by_path[definition.path].key}'",
                list_name=definition.key,
            )
        self._lists[definition.key] = definition
        self._by_path[definition.path] = definition
        logger.info(
            f"Registered list '{definition.key}' "
            f"(collection={definition.collection_name}, path={definition.path})"
        )
        return definition

    def copy(self) -> "ListRegistry":
        clone = ListRegistry()
        clone._lists = dict(self._lists)
        clone._by_path = dict(self._by_path)
        return clone

    def get(self, key: str) -> ListDefinition:
        try:
            return self._lists[key]
        except KeyError:
            raise KeyError(f"List '{key}' is not registered") from None

    def get_by_path(self, path: str) -> Optional[ListDefinition]:
        return self._by_path.get(path)

    def names(self) -> List[str]:
        return list(self._lists)

    def __contains__(self, key: object) -> bool:
        return key in self._lists

    def __iter__(self) -> Iterator[ListDefinition]:
        return iter(self._lists.values())

    def __len__(self) -> int:
        return len(self._lists)

    def validate_references(self) -> None:
        """
        Check every Relationship target.

        ``ref`` must name a registered list; a back reference
        (``List.field``) must name a Relationship field on that list that
        points back here.

        Raises:
            ListDefinitionError: On the first dangling reference
        """
        for definition in self:
            for f in definition.fields:
                if f.type is not FieldType.RELATIONSHIP:
                    continue
                target = self._lists.get(f.ref_list)
                if target is None:
                    raise ListDefinitionError(
                        f"Field '{definition.key}.{f.name}' references unknown list "
                        f"'{f.ref_list}'",
                        list_name=definition.key,
                    )
                if f.ref_field is None:
                    continue
                back = target.field(f.ref_field)
                if (
                    back is None
                    or back.type is not FieldType.RELATIONSHIP
                    or back.ref_list != definition.key
                ):
                    raise ListDefinitionError(
                        f"Field '{definition.key}.{f.name}' references "
                        f"'{f.ref}', which does not point back to '{definition.key}'",
                        list_name=definition.key,
                    )
