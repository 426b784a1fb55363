"""
Database layer: access-scoped wrappers around Motor.
"""

from .relationships import RelationshipKeeper
from .scoped_wrapper import AccessScopedCollection, ScopedDatabase

__all__ = [
    "AccessScopedCollection",
    "ScopedDatabase",
    "RelationshipKeeper",
]
