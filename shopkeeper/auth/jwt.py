"""
JWT session tokens.

The token identifies the user (``sub``) and nothing else that affects
access: the admin flag is re-read from the User record on every request.

This module is part of Shopkeeper.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from ..constants import ACCESS_TOKEN_TTL, JWT_ALGORITHM

logger = logging.getLogger(__name__)


def _normalize_secret(secret_key: Any) -> str:
    if isinstance(secret_key, bytes):
        return secret_key.decode("utf-8")
    return str(secret_key)


def encode_jwt_token(
    payload: dict[str, Any], secret_key: str, expires_in: int | None = None
) -> str:
    """
    Encode a session token with standard claims.

    Args:
        payload: Token payload (``sub`` should hold the user id)
        secret_key: Secret key for signing
        expires_in: Lifetime in seconds (defaults to ACCESS_TOKEN_TTL)

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    if expires_in is None:
        expires_in = ACCESS_TOKEN_TTL
    claims = {
        **payload,
        "iat": now,
        "nbf": now,
        "jti": payload.get("jti") or str(uuid.uuid4()),
        "type": "access",
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(claims, _normalize_secret(secret_key), algorithm=JWT_ALGORITHM)


def decode_jwt_token(token: Any, secret_key: str) -> dict[str, Any]:
    """
    Decode and verify a session token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid
    """
    if isinstance(token, bytes):
        token = token.decode("utf-8")
    return jwt.decode(str(token), _normalize_secret(secret_key), algorithms=[JWT_ALGORITHM])


def create_session_token(user: dict[str, Any], secret_key: str, expires_in: int | None = None) -> str:
    """Issue a token for a stored User record."""
    user_id = user.get("_id", user.get("id"))
    if user_id is None:
        raise ValueError("Cannot issue a token for a user without an id")
    return encode_jwt_token(
        {"sub": str(user_id), "email": user.get("email")}, secret_key, expires_in=expires_in
    )
