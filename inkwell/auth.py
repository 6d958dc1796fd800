"""
Bearer-token identity for the admin API.

Issuing tokens belongs to the login flow in front of this service; here a
signed JWT carrying a user id is resolved to the acting User.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from . import models, settings
from .deps import get_db

bearer_scheme = HTTPBearer(auto_error=False)

JWT_SECRET_KEY = settings.require_jwt_secret()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(user_id: str, expires_in_seconds: int | None = None) -> str:
    """
    Sign an access token for a user.

    Used by operators and the test suite.
    """
    if expires_in_seconds is None:
        expires_in_seconds = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60

    issued_at = datetime.now(timezone.utc)
    claims = {
        "user_id": str(user_id),
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=expires_in_seconds),
        "type": "access",
    }
    return jwt.encode(claims, JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Validate a token and return the user id it carries.

    Raises:
        HTTPException: 401 when the token is expired, malformed or not an access token
    """
    try:
        claims = jwt.decode(token, JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")

    if claims.get("type", "access") != "access" or not claims.get("user_id"):
        raise _unauthorized("Invalid token: missing user_id")
    return claims["user_id"]


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    """The acting user. Soft-deleted accounts cannot act."""
    if not credentials:
        raise _unauthorized("Authentication required")

    user_id = decode_access_token(credentials.credentials)
    user = (
        db.query(models.User)
        .filter(models.User.id == user_id, models.User.deleted_at.is_(None))
        .first()
    )
    if not user:
        raise _unauthorized("User not found")

    return user


def require_editor(user: models.User = Depends(get_current_user)) -> models.User:
    """Editors and admins manage tags and topics."""
    if user.is_contributor:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Editor or admin role required")
    return user


def require_admin(user: models.User = Depends(get_current_user)) -> models.User:
    """Only admins manage user accounts."""
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return user
