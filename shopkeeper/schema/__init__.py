"""
List schema: field types, list definitions, the registry and JSON manifests.
"""

from .builtin import (BUILTIN_LISTS, Channel, ChannelItem, Match, Shop,
                      ShopItem, User, default_registry)
from .fields import (Checkbox, DateTime, FieldDefinition, FieldType, Float,
                     Integer, Password, Relationship, Select, Text)
from .lists import ListDefinition, ListRegistry
from .manifest import (LIST_MANIFEST_SCHEMA, list_from_manifest,
                       load_lists_from_file, validate_list_manifest)

__all__ = [
    # Fields
    "FieldType",
    "FieldDefinition",
    "Text",
    "Integer",
    "Float",
    "Checkbox",
    "DateTime",
    "Select",
    "Password",
    "Relationship",
    # Lists
    "ListDefinition",
    "ListRegistry",
    # Manifests
    "LIST_MANIFEST_SCHEMA",
    "validate_list_manifest",
    "list_from_manifest",
    "load_lists_from_file",
    # Built-in lists
    "User",
    "Shop",
    "ShopItem",
    "Channel",
    "ChannelItem",
    "Match",
    "BUILTIN_LISTS",
    "default_registry",
]
