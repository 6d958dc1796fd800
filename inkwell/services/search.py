"""
Search index adapter.

Flattens posts, tags, topics and users into uniform {id, name, type, route}
rows for the admin's quick-search box.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Union

from sqlalchemy.orm import Session

from .. import models
from ..utils.scope import record_scope

if TYPE_CHECKING:
    from ..models import User


class SearchKind(str, Enum):
    POST = "post"
    TAG = "tag"
    TOPIC = "topic"
    USER = "user"


@dataclass(frozen=True)
class PostHit:
    id: str
    title: str


@dataclass(frozen=True)
class TagHit:
    id: str
    name: str


@dataclass(frozen=True)
class TopicHit:
    id: str
    name: str


@dataclass(frozen=True)
class UserHit:
    id: str
    name: str
    email: str


SearchHit = Union[PostHit, TagHit, TopicHit, UserHit]


@dataclass(frozen=True)
class SearchRow:
    id: str
    name: str
    type: str
    route: str


def project(hit: SearchHit) -> SearchRow:
    """Project one hit onto the uniform search row shape."""
    match hit:
        case PostHit(id=hit_id, title=title):
            return SearchRow(id=hit_id, name=title, type="Post", route="edit-post")
        case TagHit(id=hit_id, name=name):
            return SearchRow(id=hit_id, name=name, type="Tag", route="edit-tag")
        case TopicHit(id=hit_id, name=name):
            return SearchRow(id=hit_id, name=name, type="Topic", route="edit-topic")
        case UserHit(id=hit_id, name=name):
            return SearchRow(id=hit_id, name=name, type="User", route="edit-user")
    raise TypeError(f"Unsupported search hit: {hit!r}")


def _hits(db: Session, kind: SearchKind, actor: "User") -> list[SearchHit]:
    if kind == SearchKind.POST:
        rows = (
            db.query(models.Post.id, models.Post.title)
            .filter(record_scope(actor))
            .order_by(models.Post.created_at.desc())
            .all()
        )
        return [PostHit(id=post_id, title=title) for post_id, title in rows]

    if kind == SearchKind.TAG:
        rows = db.query(models.Tag.id, models.Tag.name).order_by(models.Tag.created_at.desc()).all()
        return [TagHit(id=tag_id, name=name) for tag_id, name in rows]

    if kind == SearchKind.TOPIC:
        rows = db.query(models.Topic.id, models.Topic.name).order_by(models.Topic.created_at.desc()).all()
        return [TopicHit(id=topic_id, name=name) for topic_id, name in rows]

    rows = (
        db.query(models.User.id, models.User.name, models.User.email)
        .filter(models.User.deleted_at.is_(None))
        .order_by(models.User.created_at.desc())
        .all()
    )
    return [UserHit(id=user_id, name=name, email=email) for user_id, name, email in rows]


def search(db: Session, kind: SearchKind | str, actor: "User") -> list[SearchRow]:
    """
    Search rows for one entity kind, most recently created first.

    Only posts are owner-scoped; tags, topics and users are global.
    """
    return [project(hit) for hit in _hits(db, SearchKind(kind), actor)]
