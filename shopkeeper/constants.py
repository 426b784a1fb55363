"""
Constants for Shopkeeper.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# ACCESS CONTROL CONSTANTS
# ============================================================================

OWNER_FIELD: Final[str] = "user"
"""Relationship field holding the owner's user id on ownable lists."""

IDENTITY_FIELD: Final[str] = "id"
"""Logical identity attribute of a record (stored as ``_id`` in MongoDB)."""

# ============================================================================
# DATABASE CONSTANTS
# ============================================================================

DEFAULT_DB_NAME: Final[str] = "shopkeeper"
"""Database name used when DB_NAME is not set."""

DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 10
"""Default minimum MongoDB connection pool size."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 45000
"""Default maximum idle time before closing connections (milliseconds)."""

DEFAULT_PAGE_LIMIT: Final[int] = 100
"""Number of documents returned by a list query when no limit is given."""

MAX_PAGE_LIMIT: Final[int] = 1000
"""Upper bound on the limit a client may request."""

# ============================================================================
# AUTHENTICATION CONSTANTS
# ============================================================================

ACCESS_TOKEN_TTL: Final[int] = 900  # 15 minutes
"""Default access token TTL in seconds."""

TOKEN_COOKIE_NAME: Final[str] = "token"
"""Cookie carrying the session JWT."""

JWT_ALGORITHM: Final[str] = "HS256"

PASSWORD_MIN_LENGTH: Final[int] = 8
"""Shortest password accepted on sign-up or password change."""

MIN_SECRET_KEY_LENGTH: Final[int] = 32
"""Recommended minimum length of SECRET_KEY."""

# ============================================================================
# HTTP CONSTANTS
# ============================================================================

DEFAULT_ADMIN_PATH: Final[str] = "/admin"
"""Mount point of the admin metadata API."""

API_PREFIX: Final[str] = "/api"

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
