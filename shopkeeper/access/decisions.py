"""
Access decisions.

A decision is one of three values:

- ``Allow``: the operation may touch any record.
- ``Deny``: the operation is rejected outright.
- ``AllowIf(filter)``: the operation may only touch records matching
  ``filter``, an equality constraint the data layer turns into a MongoDB
  query clause.

Decisions are immutable values; two evaluations with the same inputs
compare equal. They are never cached, since a subject's admin flag or a
record's owner can change between requests.

This module is part of Shopkeeper.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from bson import ObjectId
from bson.errors import InvalidId

from ..constants import IDENTITY_FIELD


def _normalize(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Mapping) and IDENTITY_FIELD in value:
        # Relationship values may arrive expanded as {"id": ...}
        return _normalize(value[IDENTITY_FIELD])
    return value


@dataclass(frozen=True)
class FieldEquals:
    """
    Equality constraint ``resource.<field> == value``.

    ``field`` is the logical attribute name; ``id`` is the record identity
    and maps to MongoDB's ``_id``.
    """

    field: str
    value: Any

    def _resource_value(self, resource: Mapping[str, Any]) -> Any:
        if self.field == IDENTITY_FIELD:
            if IDENTITY_FIELD in resource:
                return resource[IDENTITY_FIELD]
            return resource.get("_id")
        return resource.get(self.field)

    def matches(self, resource: Mapping[str, Any]) -> bool:
        """Return True if ``resource`` satisfies the constraint."""
        actual = self._resource_value(resource)
        if actual is None or self.value is None:
            return False
        return _normalize(actual) == _normalize(self.value)

    def to_query(self) -> Dict[str, Any]:
        """
        Translate to a MongoDB filter document.

        Identity constraints are matched against ``_id``; when the value is a
        valid ObjectId string both representations are accepted.
        """
        if self.field != IDENTITY_FIELD:
            return {self.field: self.value}
        value = self.value
        if isinstance(value, str):
            try:
                return {"_id": {"$in": [ObjectId(value), value]}}
            except InvalidId:
                return {"_id": value}
        return {"_id": value}


class Decision:
    """Base class of the three access decisions."""

    __slots__ = ()

    @staticmethod
    def from_bool(value: bool) -> Decision:
        """Lift a boolean predicate result: True -> Allow, False -> Deny."""
        if not isinstance(value, bool):
            raise TypeError(f"Expected bool, got {type(value).__name__}")
        return ALLOW if value else DENY

    @property
    def is_allow(self) -> bool:
        return isinstance(self, Allow)

    @property
    def is_deny(self) -> bool:
        return isinstance(self, Deny)

    def or_(self, other: Decision) -> Decision:
        """
        Logical OR of two decisions.

        ``Allow`` short-circuits; anything else adopts ``other`` verbatim,
        including its filter.
        """
        if self.is_allow:
            return ALLOW
        return other

    def resolve(self, resource: Mapping[str, Any]) -> Decision:
        """Reduce the decision against a concrete record to Allow or Deny."""
        raise NotImplementedError

    def permits(self, resource: Mapping[str, Any]) -> bool:
        return self.resolve(resource).is_allow


@dataclass(frozen=True)
class Allow(Decision):
    __slots__ = ()

    def resolve(self, resource: Mapping[str, Any]) -> Decision:
        return self

    def __repr__(self) -> str:
        return "Allow"


@dataclass(frozen=True)
class Deny(Decision):
    __slots__ = ()

    def resolve(self, resource: Mapping[str, Any]) -> Decision:
        return self

    def __repr__(self) -> str:
        return "Deny"


@dataclass(frozen=True)
class AllowIf(Decision):
    filter: FieldEquals

    def resolve(self, resource: Mapping[str, Any]) -> Decision:
        return ALLOW if self.filter.matches(resource) else DENY

    def __repr__(self) -> str:
        return f"AllowIf({self.filter.field} == {self.filter.value!r})"


ALLOW: Decision = Allow()
DENY: Decision = Deny()


def either(first: Decision, second: Decision) -> Decision:
    """Functional form of ``first.or_(second)``."""
    return first.or_(second)
