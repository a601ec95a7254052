"""
FastAPI dependencies (DB session, settings, bearer authentication)
"""
import jwt
from fastapi import Depends, Request, HTTPException, status
from sqlalchemy.orm import Session

from suba.auth import decode_access_token
from suba.config import Settings
from suba.infrastructure.db.session import get_db as _get_db
from suba.infrastructure.db.models import User


# Re-export get_db so routers import everything from here
get_db = _get_db


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> User:
    """
    Resolve the user behind ``Authorization: Bearer <token>``

    Raises:
        HTTPException(401): no token, invalid/expired token, or the user
            was deleted after the token was issued

    Usage:
        @router.get("/profile")
        def get_profile(user: User = Depends(get_current_user)):
            ...
    """
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Not authorized, no token")

    try:
        user_id = decode_access_token(settings, token.strip())
    except jwt.InvalidTokenError:
        raise _unauthorized("Not authorized, token invalid")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise _unauthorized("User no longer exists")

    return user
