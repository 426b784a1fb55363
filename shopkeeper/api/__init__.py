"""
HTTP API: FastAPI app factory, auth routes and generated CRUD routes.

This module is part of Shopkeeper.
"""

from .app import create_app
from .dependencies import (get_current_subject, get_engine, get_scoped_db,
                           require_admin, require_subject)
from .routes import build_list_router
from .serialization import serialize_record

__all__ = [
    "create_app",
    "build_list_router",
    "serialize_record",
    # Dependencies
    "get_engine",
    "get_current_subject",
    "require_subject",
    "require_admin",
    "get_scoped_db",
]
