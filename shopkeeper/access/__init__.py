"""
Access Policy Evaluator

Computes a Decision (Allow, Deny or AllowIf(filter)) for a subject, an
operation and a list. Pure and synchronous: no I/O, no shared state.

This module is part of Shopkeeper.
"""

from .decisions import (ALLOW, DENY, Allow, AllowIf, Decision, Deny,
                        FieldEquals, either)
from .policy import (NAMED_RULES, OWNABLE_ACCESS, USER_ACCESS, AccessRule,
                     ListAccess, Operation, resolve_rule)
from .predicates import (can_access_user_record, is_administrator,
                         is_administrator_or_owner, is_self, owns_resource)
from .subject import Subject

__all__ = [
    # Decisions
    "Decision",
    "Allow",
    "Deny",
    "AllowIf",
    "ALLOW",
    "DENY",
    "FieldEquals",
    "either",
    # Subject
    "Subject",
    # Predicates
    "is_administrator",
    "owns_resource",
    "is_self",
    "is_administrator_or_owner",
    "can_access_user_record",
    # Policy tables
    "Operation",
    "AccessRule",
    "ListAccess",
    "NAMED_RULES",
    "USER_ACCESS",
    "OWNABLE_ACCESS",
    "resolve_rule",
]
