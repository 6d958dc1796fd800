"""
Count annotations for listings.

Adds views_count to posts and posts_count to users, tags and topics with one GROUP BY query
per listing instead of one query per row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models

if TYPE_CHECKING:
    from ..models import Post, User


def annotate_posts_with_view_counts(db: Session, posts: list["Post"]) -> list["Post"]:
    """
    Attach a views_count attribute (all-time) to each post.

    Args:
        db: Database session
        posts: Post ORM objects to annotate

    Returns:
        Same list of posts with views_count set
    """
    if not posts:
        return posts

    post_ids = [post.id for post in posts]

    view_counts = (
        db.query(models.View.post_id, func.count(models.View.id).label("count"))
        .filter(models.View.post_id.in_(post_ids))
        .group_by(models.View.post_id)
        .all()
    )
    view_count_map = {post_id: count for post_id, count in view_counts}

    for post in posts:
        post.views_count = view_count_map.get(post.id, 0)

    return posts


def annotate_users_with_post_counts(db: Session, users: list["User"]) -> list["User"]:
    """Attach a posts_count attribute to each user."""
    if not users:
        return users

    user_ids = [user.id for user in users]

    post_counts = (
        db.query(models.Post.user_id, func.count(models.Post.id).label("count"))
        .filter(models.Post.user_id.in_(user_ids))
        .group_by(models.Post.user_id)
        .all()
    )
    post_count_map = {user_id: count for user_id, count in post_counts}

    for user in users:
        user.posts_count = post_count_map.get(user.id, 0)

    return users


def annotate_taxonomy_with_post_counts(db: Session, table, target_column: str, records: list) -> list:
    """Attach a posts_count attribute to tags or topics from their association table."""
    if not records:
        return records

    target_col = table.c[target_column]
    post_counts = (
        db.query(target_col, func.count(table.c.post_id).label("count"))
        .filter(target_col.in_([record.id for record in records]))
        .group_by(target_col)
        .all()
    )
    post_count_map = {target_id: count for target_id, count in post_counts}

    for record in records:
        record.posts_count = post_count_map.get(record.id, 0)

    return records
