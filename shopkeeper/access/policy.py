"""
Per-list access tables.

A ``ListAccess`` holds one rule per operation. A rule is either a fixed
``Decision`` or a callable ``(subject) -> Decision | bool`` that is invoked
on every check. Anything else (notably a bare ``True``/``False`` or a
predicate that was coerced to a boolean instead of being referenced) is
rejected when the table is built.

Create access on the ownable lists is unconditional. The original list
configuration coerced the owner predicate itself to a boolean for its
create slot, which is always true; that behavior is kept and the predicate
that was meant is recorded as ``intended_create``. Passing ``strict=True``
to ``evaluate`` uses the intended rule instead.

This module is part of Shopkeeper.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Mapping, Optional, Union

from ..exceptions import ListDefinitionError
from .decisions import ALLOW, DENY, Decision
from .predicates import (can_access_user_record, is_administrator,
                         is_administrator_or_owner, is_self, owns_resource)
from .subject import Subject

logger = logging.getLogger(__name__)


class Operation(str, enum.Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"

    def __str__(self) -> str:
        return self.value


AccessRule = Union[Decision, Callable[[Optional[Subject]], Union[Decision, bool]]]

# Rules addressable by name from JSON list manifests.
NAMED_RULES: Dict[str, AccessRule] = {
    "allow": ALLOW,
    "deny": DENY,
    "is_administrator": is_administrator,
    "owns_resource": owns_resource,
    "is_self": is_self,
    "is_administrator_or_owner": is_administrator_or_owner,
    "can_access_user_record": can_access_user_record,
}


def _check_rule(rule: Any, slot: str) -> None:
    if isinstance(rule, bool):
        raise ListDefinitionError(
            f"Access rule for '{slot}' is a bare boolean; use ALLOW/DENY or a predicate",
            context={"slot": slot, "value": rule},
        )
    if isinstance(rule, Decision):
        return
    if callable(rule):
        return
    raise ListDefinitionError(
        f"Access rule for '{slot}' must be a Decision or a callable, got {type(rule).__name__}",
        context={"slot": slot},
    )


def resolve_rule(rule: AccessRule, subject: Optional[Subject]) -> Decision:
    """Evaluate a single rule for a subject."""
    if isinstance(rule, Decision):
        return rule
    result = rule(subject)
    if isinstance(result, bool):
        return Decision.from_bool(result)
    if isinstance(result, Decision):
        return result
    raise ListDefinitionError(
        f"Access rule {getattr(rule, '__name__', rule)!r} returned "
        f"{type(result).__name__}, expected Decision or bool"
    )


@dataclass(frozen=True)
class ListAccess:
    create: AccessRule
    read: AccessRule
    update: AccessRule
    delete: AccessRule
    intended_create: Optional[AccessRule] = None

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "intended_create" and value is None:
                continue
            _check_rule(value, f.name)

    @classmethod
    def from_mapping(cls, access: Mapping[str, Any]) -> ListAccess:
        """
        Build a table from ``{"create": rule, "read": rule, ...}``.

        Rules may be given by name (see ``NAMED_RULES``). Unknown operations
        and missing operations are configuration errors.
        """
        allowed = {op.value for op in Operation} | {"intended_create"}
        unknown = [key for key in access if key not in allowed]
        if unknown:
            raise ListDefinitionError(
                f"Unknown operation(s) in access table: {', '.join(sorted(unknown))}",
                context={"allowed": [op.value for op in Operation]},
            )

        rules: Dict[str, Any] = {}
        for key, value in access.items():
            if isinstance(value, str):
                if value not in NAMED_RULES:
                    raise ListDefinitionError(
                        f"Unknown access rule '{value}' for '{key}'",
                        context={"known_rules": sorted(NAMED_RULES)},
                    )
                value = NAMED_RULES[value]
            rules[key] = value

        missing = [op.value for op in Operation if op.value not in rules]
        if missing:
            raise ListDefinitionError(
                f"Access table is missing operation(s): {', '.join(missing)}"
            )
        return cls(**rules)

    def rule_for(self, operation: Union[Operation, str], strict: bool = False) -> AccessRule:
        operation = Operation(operation)
        if operation is Operation.CREATE and strict and self.intended_create is not None:
            return self.intended_create
        return getattr(self, operation.value)

    def evaluate(
        self,
        operation: Union[Operation, str],
        subject: Optional[Subject],
        strict: bool = False,
    ) -> Decision:
        """
        Compute the decision for ``operation`` by ``subject``.

        Args:
            operation: create/read/update/delete
            subject: Authenticated subject, or None for anonymous requests
            strict: Evaluate ``intended_create`` for create when one is recorded

        Returns:
            Allow, Deny or AllowIf(filter)
        """
        decision = resolve_rule(self.rule_for(operation, strict=strict), subject)
        logger.debug(
            f"Access decision: operation={Operation(operation).value}, "
            f"subject={subject.id if subject else 'anonymous'}, decision={decision!r}"
        )
        return decision


USER_ACCESS = ListAccess(
    create=ALLOW,
    read=can_access_user_record,
    update=can_access_user_record,
    delete=is_administrator,
)

OWNABLE_ACCESS = ListAccess(
    create=ALLOW,
    read=is_administrator_or_owner,
    update=is_administrator_or_owner,
    delete=is_administrator_or_owner,
    intended_create=is_administrator_or_owner,
)
