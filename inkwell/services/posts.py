"""Post repository: scoped lookups, counts, create-or-update and delete."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..utils.dates import as_utc
from ..utils.scope import PostType, Scope, publication_filter, record_scope, resolve_scope
from .taxonomy_sync import TaxonomyItem, sync_taxonomy

if TYPE_CHECKING:
    from ..models import Post, User

logger = logging.getLogger(__name__)

# One retry covers losing a tag/topic slug race to a concurrent request
MAX_WRITE_ATTEMPTS = 2

# Fields a client may set on a post; owner and timestamps are server-managed
WRITABLE_FIELDS = frozenset(
    {
        "slug",
        "title",
        "summary",
        "body",
        "published_at",
        "featured_image",
        "featured_image_caption",
        "meta",
    }
)


class PostNotFound(Exception):
    """Post id is absent or outside the actor's scope."""


class SlugConflict(Exception):
    """A unique slug could not be claimed after retrying."""


def default_slug(post_id: str) -> str:
    return f"post-{post_id}"


def find_post(db: Session, post_id: str, actor: "User", *criteria) -> "Post | None":
    """
    Look up one post within the actor's single-record scope.

    Out-of-scope posts are indistinguishable from missing ones.
    """
    return (
        db.query(models.Post)
        .options(selectinload(models.Post.tags), selectinload(models.Post.topic))
        .filter(models.Post.id == post_id, record_scope(actor), *criteria)
        .first()
    )


def count_posts(db: Session, actor: "User", scope: Scope | str, post_type: PostType | str) -> int:
    return (
        db.query(func.count(models.Post.id))
        .filter(resolve_scope(actor, scope), publication_filter(post_type))
        .scalar()
    )


def _write_post(
    db: Session,
    post_id: str,
    actor: "User",
    fields: dict[str, Any],
    tags: list[TaxonomyItem],
    topic: list[TaxonomyItem],
) -> "Post":
    post = db.query(models.Post).filter(models.Post.id == post_id, record_scope(actor)).first()

    if post is None:
        if db.query(models.Post.id).filter(models.Post.id == post_id).first() is not None:
            # Exists but belongs to someone the actor cannot see
            raise PostNotFound(post_id)
        post = models.Post(id=post_id)
        db.add(post)
        logger.info(f"Creating post {post_id} for user {actor.id}")

    for key, value in fields.items():
        if key not in WRITABLE_FIELDS:
            continue
        if key == "published_at":
            value = as_utc(value)
        setattr(post, key, value)

    if post.user_id is None:
        post.user_id = actor.id
    if not post.slug:
        post.slug = default_slug(post_id)
    if post.title is None:
        post.title = ""

    db.flush()
    sync_taxonomy(db, post, tags, topic, actor)
    return post


def upsert_post(
    db: Session,
    post_id: str,
    actor: "User",
    fields: dict[str, Any],
    tags: Iterable[TaxonomyItem] = (),
    topic: Iterable[TaxonomyItem] = (),
) -> "Post":
    """
    Create or update a post addressed by a client-supplied id.

    The base record and its tag/topic associations are written in one
    transaction. If a concurrent request claims a new tag or topic slug
    first, the transaction is rolled back and replayed once; the replay
    resolves the winner's record by slug.

    Args:
        db: Database session
        post_id: Client-minted UUID of the post
        actor: User performing the write (owner of a new post)
        fields: Column values to merge onto the post
        tags: Requested tags ({name, slug})
        topic: Requested topic ({name, slug}); a list, singular in practice

    Returns:
        The post reloaded from the database with tags and topic

    Raises:
        PostNotFound: The id belongs to a post outside the actor's scope
        SlugConflict: A unique slug is still taken after retrying
    """
    tags = list(tags)
    topic = list(topic)

    for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
        try:
            _write_post(db, post_id, actor, fields, tags, topic)
            db.commit()
            break
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"upsert_post: integrity error on attempt {attempt} for post {post_id}: {e.orig}")
            if attempt == MAX_WRITE_ATTEMPTS:
                raise SlugConflict(post_id) from e
        except Exception:
            db.rollback()
            raise

    return find_post(db, post_id, actor)


def delete_post(db: Session, post_id: str, actor: "User") -> bool:
    """Hard-delete a post with its associations, views and visits."""
    post = find_post(db, post_id, actor)
    if post is None:
        return False

    db.delete(post)
    db.commit()
    logger.info(f"Deleted post {post_id} (user {actor.id})")
    return True
