"""Visibility and access scope predicates for posts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import and_, not_, true
from sqlalchemy.sql.elements import ColumnElement

from .. import models
from .dates import as_utc, utc_now

if TYPE_CHECKING:
    from ..models import Post, User


class Scope(str, Enum):
    """Requested visibility of a listing."""

    USER = "user"  # Own records only
    ALL = "all"


class PostType(str, Enum):
    """Publication partition of a listing."""

    PUBLISHED = "published"
    DRAFT = "draft"


def resolve_scope(actor: "User", requested_scope: Scope | str = Scope.USER) -> ColumnElement[bool]:
    """
    Build the owner predicate for post queries.

    Contributors are always restricted to their own posts. Other roles see
    every owner's posts only when they explicitly ask for scope=all; the
    default scope is "user".

    Callers recompute this per query. Single-record lookups, which carry no
    scope parameter, pass Scope.ALL so only contributors are restricted.

    Args:
        actor: The authenticated user performing the request
        requested_scope: "user" or "all"

    Returns:
        SQLAlchemy boolean clause to pass to Query.filter()
    """
    if actor.is_contributor or Scope(requested_scope) != Scope.ALL:
        return models.Post.user_id == actor.id
    return true()


def record_scope(actor: "User") -> ColumnElement[bool]:
    """Owner predicate for single-record lookups (show, upsert, stats, delete, search)."""
    return resolve_scope(actor, Scope.ALL)


def published_filter(now: datetime | None = None) -> ColumnElement[bool]:
    now = now or utc_now()
    return and_(models.Post.published_at.isnot(None), models.Post.published_at <= now)


def draft_filter(now: datetime | None = None) -> ColumnElement[bool]:
    return not_(published_filter(now))


def publication_filter(post_type: PostType | str = PostType.PUBLISHED, now: datetime | None = None) -> ColumnElement[bool]:
    """Select the published (default) or draft partition, independent of owner scope."""
    if PostType(post_type) == PostType.DRAFT:
        return draft_filter(now)
    return published_filter(now)


def is_published(post: "Post", now: datetime | None = None) -> bool:
    """A post is published once published_at is set and not in the future."""
    published_at = as_utc(post.published_at)
    if published_at is None:
        return False
    return published_at <= (now or utc_now())
