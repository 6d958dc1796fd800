"""
Statistics aggregation service for post analytics.

Computes view and visit statistics on demand from the raw View and Visit
records, for a single post or across a collection of posts, bucketed into
calendar days of a configured timezone over a trailing window.

Callers are responsible for scoping: the functions here trust that the
posts they receive are already filtered to what the actor may see (and,
for aggregate stats, to published posts only).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import TYPE_CHECKING, Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models
from ..utils.dates import as_utc, utc_now

if TYPE_CHECKING:
    from ..models import Post

logger = logging.getLogger(__name__)

# Referer hosts reported per post
TOP_REFERERS_LIMIT = 10

DIRECT_REFERER = "(direct)"

# Parts of the day used for popular reading times, by local hour
READING_TIME_BUCKETS: dict[str, range] = {
    "morning": range(5, 12),
    "afternoon": range(12, 17),
    "evening": range(17, 21),
}
NIGHT = "night"


@dataclass
class DailyTraffic:
    """Views and visits on one calendar day."""

    date: str  # ISO format date string
    views: int
    visits: int


@dataclass
class PostTraffic:
    """Window totals for one post of an aggregate."""

    post_id: str
    title: str
    slug: str
    views: int
    visits: int


@dataclass
class MonthOverMonth:
    """Current calendar month against the previous one."""

    views_this_month: int
    views_last_month: int
    views_change: float | None  # Percent; None when last month had no views
    visits_this_month: int
    visits_last_month: int
    visits_change: float | None


@dataclass
class PostStats:
    """Statistics for one post over a trailing window."""

    post_id: str
    window_days: int
    total_views: int
    total_visits: int
    daily: list[DailyTraffic]
    read_time: str
    top_referers: dict[str, int]
    popular_reading_times: dict[str, float]
    month_over_month: MonthOverMonth
    computed_at: str  # ISO format datetime


@dataclass
class PostsStats:
    """Statistics across a collection of posts over a trailing window."""

    window_days: int
    total_views: int
    total_visits: int
    most_viewed: "Post | None"
    daily: list[DailyTraffic]
    posts: list[PostTraffic] = field(default_factory=list)
    computed_at: str = ""


def window_days_for(window_days: int, tz: tzinfo, now: datetime) -> list[date]:
    """
    Calendar days of a trailing window, oldest first, ending today in tz.

    Raises:
        ValueError: window_days is not positive
    """
    if window_days < 1:
        raise ValueError("window_days must be at least 1")
    today = now.astimezone(tz).date()
    return [today - timedelta(days=offset) for offset in range(window_days - 1, -1, -1)]


def _day_start_utc(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def _load_events(
    db: Session,
    model: type[models.View] | type[models.Visit],
    post_ids: list[str],
    start: datetime,
    end: datetime,
) -> list[tuple[str, datetime, str | None]]:
    """Raw (post_id, created_at, referer) rows in [start, end]."""
    if not post_ids:
        return []
    return (
        db.query(model.post_id, model.created_at, model.referer)
        .filter(
            model.post_id.in_(post_ids),
            model.created_at >= start,
            model.created_at <= end,
        )
        .all()
    )


def _local_day(created_at: datetime, tz: tzinfo) -> date:
    return as_utc(created_at).astimezone(tz).date()


def build_daily_series(
    view_times: Iterable[datetime],
    visit_times: Iterable[datetime],
    days: list[date],
    tz: tzinfo,
) -> list[DailyTraffic]:
    """
    Bucket timestamps per local calendar day, one entry per day of the window.

    Days without events are present with zero counts.
    """
    views_by_day = Counter(_local_day(ts, tz) for ts in view_times)
    visits_by_day = Counter(_local_day(ts, tz) for ts in visit_times)

    return [
        DailyTraffic(date=day.isoformat(), views=views_by_day.get(day, 0), visits=visits_by_day.get(day, 0))
        for day in days
    ]


def _part_of_day(hour: int) -> str:
    for name, hours in READING_TIME_BUCKETS.items():
        if hour in hours:
            return name
    return NIGHT


def popular_reading_times(view_times: Iterable[datetime], tz: tzinfo) -> dict[str, float]:
    """Share of views (percent) per part of the local day."""
    counts = Counter(_part_of_day(as_utc(ts).astimezone(tz).hour) for ts in view_times)
    total = sum(counts.values())
    names = [*READING_TIME_BUCKETS.keys(), NIGHT]
    if not total:
        return {name: 0.0 for name in names}
    return {name: round(counts.get(name, 0) / total * 100, 2) for name in names}


def top_referers(referers: Iterable[str | None], limit: int = TOP_REFERERS_LIMIT) -> dict[str, int]:
    counts = Counter(referer or DIRECT_REFERER for referer in referers)
    return dict(counts.most_common(limit))


def _percent_change(current: int, previous: int) -> float | None:
    if previous == 0:
        return None
    return round((current - previous) / previous * 100, 2)


def _count_between(
    db: Session,
    model: type[models.View] | type[models.Visit],
    post_id: str,
    start: datetime,
    end: datetime,
) -> int:
    return (
        db.query(func.count(model.id))
        .filter(model.post_id == post_id, model.created_at >= start, model.created_at < end)
        .scalar()
    )


def month_over_month(db: Session, post_id: str, tz: tzinfo, now: datetime) -> MonthOverMonth:
    """Views and visits this calendar month (to now) against last month."""
    local_now = now.astimezone(tz)
    this_month = local_now.date().replace(day=1)
    last_month = (this_month - timedelta(days=1)).replace(day=1)

    this_start = _day_start_utc(this_month, tz)
    last_start = _day_start_utc(last_month, tz)
    end = now + timedelta(microseconds=1)

    views_this = _count_between(db, models.View, post_id, this_start, end)
    views_last = _count_between(db, models.View, post_id, last_start, this_start)
    visits_this = _count_between(db, models.Visit, post_id, this_start, end)
    visits_last = _count_between(db, models.Visit, post_id, last_start, this_start)

    return MonthOverMonth(
        views_this_month=views_this,
        views_last_month=views_last,
        views_change=_percent_change(views_this, views_last),
        visits_this_month=visits_this,
        visits_last_month=visits_last,
        visits_change=_percent_change(visits_this, visits_last),
    )


def stats_for_post(
    db: Session,
    post: "Post",
    window_days: int,
    tz: tzinfo,
    now: datetime | None = None,
) -> PostStats:
    """
    Compute statistics for one post.

    Totals cover the trailing window, so they always equal the sum of the
    daily series.

    Args:
        db: Database session
        post: Post already resolved within the actor's scope
        window_days: Number of calendar days in the series (ending today)
        tz: Timezone whose calendar days bucket the events
        now: Reference time (defaults to the current time)

    Returns:
        PostStats
    """
    now = as_utc(now) if now else utc_now()
    days = window_days_for(window_days, tz, now)
    start = _day_start_utc(days[0], tz)

    views = _load_events(db, models.View, [post.id], start, now)
    visits = _load_events(db, models.Visit, [post.id], start, now)

    view_times = [created_at for _, created_at, _ in views]

    logger.debug(f"Computed stats for post {post.id}: {len(views)} views, {len(visits)} visits in {window_days} days")

    return PostStats(
        post_id=post.id,
        window_days=window_days,
        total_views=len(views),
        total_visits=len(visits),
        daily=build_daily_series(view_times, [created_at for _, created_at, _ in visits], days, tz),
        read_time=post.read_time,
        top_referers=top_referers(referer for _, _, referer in views),
        popular_reading_times=popular_reading_times(view_times, tz),
        month_over_month=month_over_month(db, post.id, tz, now),
        computed_at=now.isoformat(),
    )


def stats_for_posts(
    db: Session,
    posts: list["Post"],
    window_days: int,
    tz: tzinfo,
    now: datetime | None = None,
) -> PostsStats:
    """
    Combine view and visit counts across a collection of posts.

    An empty collection still yields a full zero-filled series.

    Args:
        db: Database session
        posts: Posts already filtered to the actor's scope and to published
            posts, most recent first
        window_days: Number of calendar days in the series (ending today)
        tz: Timezone whose calendar days bucket the events
        now: Reference time (defaults to the current time)

    Returns:
        PostsStats; most_viewed is the post with the most views in the
        window (first one wins ties), or None when nothing was viewed
    """
    now = as_utc(now) if now else utc_now()
    days = window_days_for(window_days, tz, now)
    start = _day_start_utc(days[0], tz)
    post_ids = [post.id for post in posts]

    views = _load_events(db, models.View, post_ids, start, now)
    visits = _load_events(db, models.Visit, post_ids, start, now)

    views_per_post = Counter(post_id for post_id, _, _ in views)
    visits_per_post = Counter(post_id for post_id, _, _ in visits)

    most_viewed = None
    most_views = 0
    for post in posts:
        if views_per_post.get(post.id, 0) > most_views:
            most_viewed = post
            most_views = views_per_post[post.id]

    return PostsStats(
        window_days=window_days,
        total_views=len(views),
        total_visits=len(visits),
        most_viewed=most_viewed,
        daily=build_daily_series(
            (created_at for _, created_at, _ in views),
            (created_at for _, created_at, _ in visits),
            days,
            tz,
        ),
        posts=[
            PostTraffic(
                post_id=post.id,
                title=post.title,
                slug=post.slug,
                views=views_per_post.get(post.id, 0),
                visits=visits_per_post.get(post.id, 0),
            )
            for post in posts
        ],
        computed_at=now.isoformat(),
    )
