"""
Shopkeeper - MongoDB-backed admin backend

Declarative lists for shops, sales channels and their items, with row-level
access control enforced on every database call.
"""

# Access policy
from .access import (ALLOW, DENY, Allow, AllowIf, Decision, Deny,
                     ListAccess, Operation, Subject)
# Configuration
from .config import ShopkeeperConfig
# Core engine
from .core import ShopkeeperEngine
# Database layer
from .database import AccessScopedCollection, ScopedDatabase
# Schema
from .schema import ListDefinition, ListRegistry, default_registry

__version__ = "0.1.0"

__all__ = [
    # Core
    "ShopkeeperEngine",
    "ShopkeeperConfig",
    # Access
    "Subject",
    "Operation",
    "Decision",
    "Allow",
    "Deny",
    "AllowIf",
    "ALLOW",
    "DENY",
    "ListAccess",
    # Schema
    "ListDefinition",
    "ListRegistry",
    "default_registry",
    # Database
    "AccessScopedCollection",
    "ScopedDatabase",
]
