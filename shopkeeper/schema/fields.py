"""
Field types and field declarations.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Tuple

from pydantic import StringConstraints

from ..constants import PASSWORD_MIN_LENGTH


class FieldType(str, enum.Enum):
    TEXT = "Text"
    INTEGER = "Integer"
    FLOAT = "Float"
    CHECKBOX = "Checkbox"
    DATETIME = "DateTime"
    SELECT = "Select"
    PASSWORD = "Password"
    RELATIONSHIP = "Relationship"


@dataclass(frozen=True)
class FieldDefinition:
    """
    One field of a list.

    Relationship fields store the referenced record's id (or a list of ids
    when ``many`` is set). ``ref`` is either ``"List"`` or
    ``"List.backField"`` for two-sided relationships.
    """

    name: str
    type: FieldType
    is_required: bool = False
    is_unique: bool = False
    ref: Optional[str] = None
    many: bool = False
    options: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.type is FieldType.RELATIONSHIP and not self.ref:
            raise ValueError(f"Relationship field '{self.name}' requires 'ref'")
        if self.type is not FieldType.RELATIONSHIP and (self.ref or self.many):
            raise ValueError(f"Field '{self.name}' of type {self.type.value} cannot set ref/many")
        if self.type is FieldType.SELECT and not self.options:
            raise ValueError(f"Select field '{self.name}' requires 'options'")

    @property
    def ref_list(self) -> Optional[str]:
        return self.ref.split(".", 1)[0] if self.ref else None

    @property
    def ref_field(self) -> Optional[str]:
        if self.ref and "." in self.ref:
            return self.ref.split(".", 1)[1]
        return None

    @property
    def is_secret(self) -> bool:
        return self.type is FieldType.PASSWORD

    def python_type(self) -> Any:
        """Type used when building the list's pydantic input model."""
        if self.type is FieldType.RELATIONSHIP:
            return List[str] if self.many else str
        if self.type is FieldType.SELECT:
            return Literal[self.options]
        if self.type is FieldType.PASSWORD:
            return Annotated[str, StringConstraints(min_length=PASSWORD_MIN_LENGTH)]
        return {
            FieldType.TEXT: str,
            FieldType.INTEGER: int,
            FieldType.FLOAT: float,
            FieldType.CHECKBOX: bool,
            FieldType.DATETIME: datetime,
        }[self.type]

    def describe(self) -> dict:
        """Metadata consumed by the admin client."""
        info = {
            "name": self.name,
            "type": self.type.value,
            "isRequired": self.is_required,
            "isUnique": self.is_unique,
        }
        if self.ref:
            info["ref"] = self.ref
            info["many"] = self.many
        if self.options:
            info["options"] = list(self.options)
        return info


# Shorthands used by list declarations.
def Text(name: str, **kwargs: Any) -> FieldDefinition:
    return FieldDefinition(name, FieldType.TEXT, **kwargs)


def Integer(name: str, **kwargs: Any) -> FieldDefinition:
    return FieldDefinition(name, FieldType.INTEGER, **kwargs)


def Float(name: str, **kwargs: Any) -> FieldDefinition:
    return FieldDefinition(name, FieldType.FLOAT, **kwargs)


def Checkbox(name: str, **kwargs: Any) -> FieldDefinition:
    return FieldDefinition(name, FieldType.CHECKBOX, **kwargs)


def DateTime(name: str, **kwargs: Any) -> FieldDefinition:
    return FieldDefinition(name, FieldType.DATETIME, **kwargs)


def Select(name: str, options: Tuple[str, ...], **kwargs: Any) -> FieldDefinition:
    return FieldDefinition(name, FieldType.SELECT, options=tuple(options), **kwargs)


def Password(name: str, **kwargs: Any) -> FieldDefinition:
    return FieldDefinition(name, FieldType.PASSWORD, **kwargs)


def Relationship(name: str, ref: str, many: bool = False, **kwargs: Any) -> FieldDefinition:
    return FieldDefinition(name, FieldType.RELATIONSHIP, ref=ref, many=many, **kwargs)
