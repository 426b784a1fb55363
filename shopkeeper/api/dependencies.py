"""
FastAPI dependencies for authentication and access-scoped data.

This module is part of Shopkeeper.
"""

import logging

import jwt
from fastapi import Cookie, Depends, HTTPException, Request, status

from ..access import Subject, is_administrator
from ..auth import decode_jwt_token
from ..constants import TOKEN_COOKIE_NAME
from ..core import ShopkeeperEngine
from ..database import ScopedDatabase
from ..observability import set_request_context

logger = logging.getLogger(__name__)


def get_engine(request: Request) -> ShopkeeperEngine:
    """
    FastAPI Dependency: Retrieves the engine from app.state.
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        logger.critical("get_engine: engine not found on app.state!")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error: engine not loaded.",
        )
    return engine


def _extract_token(request: Request, cookie_token: str | None) -> str | None:
    if cookie_token:
        return cookie_token
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def get_current_subject(
    request: Request,
    engine: ShopkeeperEngine = Depends(get_engine),
    token: str | None = Cookie(default=None, alias=TOKEN_COOKIE_NAME),
) -> Subject | None:
    """
    FastAPI Dependency: Resolves the request's Subject.

    Reads the session token from the ``token`` cookie or an
    ``Authorization: Bearer`` header. A missing, expired or invalid token
    resolves to None (anonymous); it is never an error by itself.
    """
    raw_token = _extract_token(request, token)
    if not raw_token:
        set_request_context(None)
        return None

    try:
        payload = decode_jwt_token(raw_token, engine.config.secret_key)
    except jwt.ExpiredSignatureError:
        logger.info("get_current_subject: Authentication token has expired.")
        set_request_context(None)
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"get_current_subject: Invalid token: {e}")
        set_request_context(None)
        return None

    if payload.get("type") not in (None, "access"):
        logger.warning(f"get_current_subject: Unexpected token type '{payload.get('type')}'")
        set_request_context(None)
        return None

    subject = await engine.resolve_subject(payload.get("sub"))
    set_request_context(subject.id if subject else None)
    return subject


async def require_subject(
    subject: Subject | None = Depends(get_current_subject),
) -> Subject:
    """FastAPI Dependency: 401 unless the request is authenticated."""
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )
    return subject


async def require_admin(
    subject: Subject | None = Depends(get_current_subject),
) -> Subject:
    """FastAPI Dependency: 403 unless the subject is an administrator."""
    if not is_administrator(subject):
        logger.warning(
            f"require_admin: Admin access DENIED for "
            f"{subject.id if subject else 'anonymous'}."
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator privileges are required to access this resource.",
        )
    return subject


async def get_scoped_db(
    engine: ShopkeeperEngine = Depends(get_engine),
    subject: Subject | None = Depends(get_current_subject),
) -> ScopedDatabase:
    """FastAPI Dependency: database handle bound to the request's subject."""
    return engine.scoped_db(subject)
