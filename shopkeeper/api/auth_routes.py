"""
Sign-in, sign-out and current-user routes.

This module is part of Shopkeeper.
"""

import logging
import os
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel

from ..access import Subject
from ..auth import create_session_token
from ..constants import TOKEN_COOKIE_NAME
from ..core import ShopkeeperEngine
from .dependencies import get_current_subject, get_engine
from .serialization import serialize_record

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class SigninRequest(BaseModel):
    email: str
    password: str


def get_secure_cookie_settings(request: Request) -> Dict[str, Any]:
    """
    Cookie flags for the session token: always HttpOnly and SameSite=lax;
    Secure over HTTPS or when ENVIRONMENT=production.
    """
    is_https = request.url.scheme == "https"
    is_production = os.getenv("ENVIRONMENT") == "production"
    return {
        "httponly": True,
        "secure": is_https or is_production,
        "samesite": "lax",
    }


@router.post("/signin")
async def signin(
    credentials: SigninRequest,
    request: Request,
    response: Response,
    engine: ShopkeeperEngine = Depends(get_engine),
) -> Dict[str, Any]:
    user = await engine.authenticate(credentials.email, credentials.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    ttl = engine.config.access_token_ttl
    token = create_session_token(user, engine.config.secret_key, expires_in=ttl)
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=token,
        max_age=ttl,
        **get_secure_cookie_settings(request),
    )
    logger.info(f"User '{user.get('_id')}' signed in")
    return {
        "token": token,
        "user": serialize_record(engine.registry.get("User"), user),
    }


@router.post("/signout")
async def signout(request: Request, response: Response) -> Dict[str, bool]:
    settings = get_secure_cookie_settings(request)
    response.delete_cookie(
        key=TOKEN_COOKIE_NAME,
        httponly=True,
        secure=settings["secure"],
        samesite=settings["samesite"],
    )
    return {"success": True}


@router.get("/me")
async def me(
    engine: ShopkeeperEngine = Depends(get_engine),
    subject: Subject | None = Depends(get_current_subject),
) -> Dict[str, Any]:
    """The authenticated user, or ``{"user": null}`` for anonymous requests."""
    if subject is None:
        return {"user": None}
    user = await engine.load_user(subject.id)
    if user is None:
        return {"user": None}
    return {"user": serialize_record(engine.registry.get("User"), user)}
