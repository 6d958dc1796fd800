from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .models import Role


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Generic paginated response."""

    items: list[T]
    next_cursor: str | None = None


# ============================================================================
# HEALTH
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"
    uptime_s: float | None = None


# ============================================================================
# TAGS & TOPICS
# ============================================================================


class TaxonomyRef(BaseModel):
    """A tag or topic as requested on a post write and echoed on reads."""

    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255)

    model_config = ConfigDict(from_attributes=True)


class TaxonomyOut(BaseModel):
    """Tag or topic record."""

    id: str
    name: str
    slug: str
    user_id: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    posts_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class TaxonomyUpsert(BaseModel):
    """Request body to create or update a tag or topic."""

    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255)


class TaxonomyFormResponse(BaseModel):
    """Blank tag/topic skeleton for the editor."""

    id: str
    name: str = ""
    slug: str = ""


# ============================================================================
# POSTS
# ============================================================================


class PostSummary(BaseModel):
    """Post row in listings."""

    id: str
    slug: str
    title: str
    summary: str | None = None
    published_at: datetime | None = None
    featured_image: str | None = None
    user_id: str
    created_at: datetime
    updated_at: datetime | None = None
    is_published: bool
    views_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class Post(BaseModel):
    """Full post with its tags and topic."""

    id: str
    slug: str
    title: str
    summary: str | None = None
    body: str | None = None
    published_at: datetime | None = None
    featured_image: str | None = None
    featured_image_caption: str | None = None
    meta: dict[str, Any] | None = None
    user_id: str
    created_at: datetime
    updated_at: datetime | None = None
    is_published: bool
    read_time: str
    tags: list[TaxonomyRef] = []
    topic: list[TaxonomyRef] = []

    model_config = ConfigDict(from_attributes=True)


class PostListResponse(BaseModel):
    """One page of posts plus the partition counts for the current scope."""

    posts: Page[PostSummary]
    draft_count: int
    published_count: int


class PostSeed(BaseModel):
    """Blank post skeleton with a freshly minted id."""

    id: str
    slug: str
    title: str = ""
    published_at: datetime | None = None
    tags: list[TaxonomyRef] = []
    topic: list[TaxonomyRef] = []


class PostFormResponse(BaseModel):
    """New-post form seed: skeleton plus every known tag and topic."""

    post: PostSeed
    tags: list[TaxonomyRef]
    topics: list[TaxonomyRef]


class PostDetailResponse(BaseModel):
    """Post with the full tag and topic catalogues for the editor."""

    post: Post
    tags: list[TaxonomyRef]
    topics: list[TaxonomyRef]


class PostUpsert(BaseModel):
    """Request body to create or update a post."""

    slug: str | None = Field(None, max_length=255)
    title: str | None = Field(None, max_length=255)
    summary: str | None = None
    body: str | None = None
    published_at: datetime | None = None
    featured_image: str | None = Field(None, max_length=500)
    featured_image_caption: str | None = Field(None, max_length=500)
    meta: dict[str, Any] | None = None
    tags: list[TaxonomyRef] = []
    topic: list[TaxonomyRef] = []


# ============================================================================
# STATS
# ============================================================================


class DailyTraffic(BaseModel):
    """Views and visits on one calendar day."""

    date: str
    views: int
    visits: int

    model_config = ConfigDict(from_attributes=True)


class PostTraffic(BaseModel):
    """Window totals for one post of an aggregate."""

    post_id: str
    title: str
    slug: str
    views: int
    visits: int

    model_config = ConfigDict(from_attributes=True)


class MonthOverMonth(BaseModel):
    views_this_month: int
    views_last_month: int
    views_change: float | None = None
    visits_this_month: int
    visits_last_month: int
    visits_change: float | None = None

    model_config = ConfigDict(from_attributes=True)


class PostStatsResponse(BaseModel):
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
    computed_at: str

    model_config = ConfigDict(from_attributes=True)


class MostViewedPost(PostSummary):
    """Most viewed post of an aggregate: views_count is all-time, window_views covers the window."""

    window_views: int


class StatsResponse(BaseModel):
    """Aggregate statistics across the actor's published posts."""

    window_days: int
    total_views: int
    total_visits: int
    most_viewed: MostViewedPost | None = None
    daily: list[DailyTraffic]
    posts: list[PostTraffic]
    computed_at: str

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# SEARCH
# ============================================================================


class SearchResult(BaseModel):
    """Uniform search row across posts, tags, topics and users."""

    id: str
    name: str
    type: Literal["Post", "Tag", "Topic", "User"]
    route: Literal["edit-post", "edit-tag", "edit-topic", "edit-user"]

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# USERS
# ============================================================================


class UserOut(BaseModel):
    """Account as shown in the admin."""

    id: str
    name: str
    email: str
    username: str | None = None
    summary: str | None = None
    avatar: str | None = None
    role: Role
    locale: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    posts_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class UserUpsert(BaseModel):
    """Request body to create, update or restore a user."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    username: str | None = Field(None, max_length=255)
    summary: str | None = None
    avatar: str | None = Field(None, max_length=500)
    password: str | None = Field(None, min_length=8, max_length=72)
    role: Role = Role.CONTRIBUTOR
    locale: str | None = Field(None, max_length=10)

    model_config = ConfigDict(use_enum_values=True)


class UserFormResponse(BaseModel):
    """Blank user skeleton with a freshly minted id."""

    id: str
    role: Role = Role.CONTRIBUTOR
    locale: str
