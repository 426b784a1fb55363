"""
Authentication

Password sign-in against the User list and JWT session tokens. The FastAPI
dependencies that turn a token into a Subject live in
``shopkeeper.api.dependencies``.

This module is part of Shopkeeper.
"""

from .jwt import create_session_token, decode_jwt_token, encode_jwt_token
from .passwords import (PasswordAuthStrategy, hash_password, is_password_hash,
                        verify_password)

__all__ = [
    # JWT
    "encode_jwt_token",
    "decode_jwt_token",
    "create_session_token",
    # Passwords
    "PasswordAuthStrategy",
    "hash_password",
    "is_password_hash",
    "verify_password",
]
