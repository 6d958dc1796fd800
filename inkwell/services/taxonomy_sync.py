"""
Tag and topic synchronization for posts.

Resolves the tags and topic requested for a post against existing records
(creating missing ones on demand) and rewrites the post's association rows
so they match the requested set exactly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Protocol

from sqlalchemy import Table, delete, insert, select
from sqlalchemy.orm import Session

from .. import models
from ..utils.dates import utc_now

if TYPE_CHECKING:
    from ..models import Post, User

logger = logging.getLogger(__name__)


class TaxonomyItem(Protocol):
    name: str
    slug: str


@dataclass
class SyncChanges:
    """Association rows touched by one sync."""

    attached: list[str] = field(default_factory=list)
    detached: list[str] = field(default_factory=list)


@dataclass
class SyncReport:
    tags: SyncChanges
    topic: SyncChanges


def resolve_taxonomy_ids(
    db: Session,
    model: type[models.Tag] | type[models.Topic],
    requested: Iterable[TaxonomyItem],
    actor: "User",
) -> list[str]:
    """
    Map requested {name, slug} items to record ids, creating missing records.

    The whole collection is loaded once so lookups by slug do not issue one
    query per item. New records are owned by the actor and get a fresh UUID.
    Repeated slugs in one request resolve to the same record.

    Args:
        db: Database session
        model: models.Tag or models.Topic
        requested: Items carrying name and slug
        actor: User performing the write

    Returns:
        Record ids in request order, without duplicates
    """
    ids_by_slug = {slug: record_id for record_id, slug in db.query(model.id, model.slug).all()}

    resolved: list[str] = []
    for item in requested:
        record_id = ids_by_slug.get(item.slug)
        if record_id is None:
            record = model(id=models.new_id(), name=item.name, slug=item.slug, user_id=actor.id)
            db.add(record)
            record_id = record.id
            ids_by_slug[item.slug] = record_id
            logger.info(f"Creating {model.__name__.lower()} '{item.slug}' for user {actor.id}")
        if record_id not in resolved:
            resolved.append(record_id)

    # New rows must exist before association rows reference them
    db.flush()
    return resolved


def sync_association(
    db: Session,
    table: Table,
    owner_column: str,
    target_column: str,
    owner_id: str,
    target_ids: list[str],
) -> SyncChanges:
    """
    Replace an owner's association rows with exactly target_ids.

    Rows whose target is still requested are left untouched; only removed
    targets are deleted and only new targets are inserted.
    """
    owner_col = table.c[owner_column]
    target_col = table.c[target_column]

    current = set(db.execute(select(target_col).where(owner_col == owner_id)).scalars().all())
    wanted = set(target_ids)

    detached = sorted(current - wanted)
    attached = [target_id for target_id in target_ids if target_id not in current]

    if detached:
        db.execute(delete(table).where(owner_col == owner_id, target_col.in_(detached)))
    if attached:
        now = utc_now()
        db.execute(
            insert(table),
            [{owner_column: owner_id, target_column: target_id, "created_at": now} for target_id in attached],
        )

    return SyncChanges(attached=attached, detached=detached)


def sync_taxonomy(
    db: Session,
    post: "Post",
    tags: Iterable[TaxonomyItem],
    topic: Iterable[TaxonomyItem],
    actor: "User",
) -> SyncReport:
    """
    Synchronize a post's tags and topic with the requested items.

    Runs inside the caller's transaction; the caller commits. A concurrent
    request creating the same slug makes the flush raise IntegrityError,
    which the post write path handles by retrying.
    """
    tag_ids = resolve_taxonomy_ids(db, models.Tag, tags, actor)
    topic_ids = resolve_taxonomy_ids(db, models.Topic, topic, actor)

    report = SyncReport(
        tags=sync_association(db, models.posts_tags, "post_id", "tag_id", post.id, tag_ids),
        topic=sync_association(db, models.posts_topics, "post_id", "topic_id", post.id, topic_ids),
    )

    logger.debug(
        f"Synced post {post.id}: tags +{len(report.tags.attached)}/-{len(report.tags.detached)}, "
        f"topic +{len(report.topic.attached)}/-{len(report.topic.detached)}"
    )
    return report
