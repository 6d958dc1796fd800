"""User account service: upsert with tombstone restore, locale fallback, soft delete."""

from __future__ import annotations

import logging
from typing import Any

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, settings
from ..utils.dates import utc_now

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

WRITABLE_FIELDS = frozenset({"name", "email", "username", "summary", "avatar", "role", "locale"})


class UserConflict(Exception):
    """Email, username or id already belongs to another account."""


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def normalize_locale(locale: str | None) -> str:
    """Return the locale if it is available, otherwise the fallback locale."""
    if locale and locale in settings.AVAILABLE_LOCALES:
        return locale
    return settings.FALLBACK_LOCALE


def find_user(db: Session, user_id: str) -> models.User | None:
    """Live (not soft-deleted) user by id."""
    return (
        db.query(models.User)
        .filter(models.User.id == user_id, models.User.deleted_at.is_(None))
        .first()
    )


def upsert_user(db: Session, user_id: str, fields: dict[str, Any]) -> models.User:
    """
    Create or update a user addressed by a client-supplied id.

    When no live user has this id but a soft-deleted user has the requested
    email, that account is restored and returned as it was; no new row is
    created.

    Args:
        db: Database session
        user_id: Client-minted UUID
        fields: Column values; "password" is hashed before storing

    Returns:
        The created, updated or restored user

    Raises:
        UserConflict: The email/username is taken by another live account,
            or the id belongs to a deleted account with another email
    """
    user = find_user(db, user_id)

    if user is None:
        email = fields.get("email")
        trashed = (
            db.query(models.User)
            .filter(models.User.email == email, models.User.deleted_at.isnot(None))
            .first()
            if email
            else None
        )
        if trashed is not None:
            trashed.deleted_at = None
            db.commit()
            db.refresh(trashed)
            logger.info(f"Restored user {trashed.id} ({trashed.email})")
            return trashed

        if db.query(models.User.id).filter(models.User.id == user_id).first() is not None:
            raise UserConflict(f"User id {user_id} belongs to a deleted account")

        user = models.User(id=user_id)
        db.add(user)

    for key, value in fields.items():
        if key in WRITABLE_FIELDS:
            setattr(user, key, value)

    if "locale" in fields or user.locale is None:
        user.locale = normalize_locale(fields.get("locale"))

    if fields.get("password"):
        user.password = hash_password(fields["password"])

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"upsert_user: integrity error for user {user_id}: {e.orig}")
        raise UserConflict("Email or username already taken") from e

    db.refresh(user)
    return user


def soft_delete_user(db: Session, user: models.User) -> None:
    """Mark a user as deleted; a later create with the same email restores it."""
    user.deleted_at = utc_now()
    db.commit()
    logger.info(f"Soft-deleted user {user.id}")
