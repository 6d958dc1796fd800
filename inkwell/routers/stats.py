"""Aggregate traffic statistics across posts."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas, settings
from ..auth import get_current_user
from ..deps import get_db
from ..services.counts import annotate_posts_with_view_counts
from ..services.stats import stats_for_posts
from ..utils.scope import Scope, published_filter, resolve_scope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stats", tags=["Statistics"])


@router.get("", response_model=schemas.StatsResponse)
def get_stats(
    scope: Scope = Query(Scope.USER, description="user: own posts only; all: every owner (not for contributors)"),
    days: int = Query(settings.STATS_WINDOW_DAYS, ge=1, le=settings.STATS_WINDOW_MAX_DAYS),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.StatsResponse:
    """
    Views and visits across the actor's published posts over the last `days` days.

    Only published posts are aggregated; drafts never contribute.
    """
    posts = (
        db.query(models.Post)
        .filter(resolve_scope(current_user, scope), published_filter())
        .order_by(models.Post.created_at.desc(), models.Post.id.desc())
        .all()
    )

    stats = stats_for_posts(db, posts, days, settings.get_timezone())

    most_viewed = None
    if stats.most_viewed is not None:
        post = annotate_posts_with_view_counts(db, [stats.most_viewed])[0]
        post.window_views = next(row.views for row in stats.posts if row.post_id == post.id)
        most_viewed = schemas.MostViewedPost.model_validate(post)

    return schemas.StatsResponse(
        window_days=stats.window_days,
        total_views=stats.total_views,
        total_visits=stats.total_visits,
        most_viewed=most_viewed,
        daily=[schemas.DailyTraffic.model_validate(day) for day in stats.daily],
        posts=[schemas.PostTraffic.model_validate(row) for row in stats.posts],
        computed_at=stats.computed_at,
    )
