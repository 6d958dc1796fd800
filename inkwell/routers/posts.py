"""Post management endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas, settings
from ..auth import get_current_user
from ..deps import get_db
from ..pagination import apply_cursor_filter, create_page_response
from ..services.counts import annotate_posts_with_view_counts
from ..services.posts import (
    PostNotFound,
    SlugConflict,
    count_posts,
    default_slug,
    delete_post,
    find_post,
    upsert_post,
)
from ..services.stats import stats_for_post
from ..utils.scope import PostType, Scope, publication_filter, published_filter, resolve_scope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])


def _taxonomy_catalogue(db: Session, model) -> list[schemas.TaxonomyRef]:
    rows = db.query(model.name, model.slug).order_by(model.name).all()
    return [schemas.TaxonomyRef(name=name, slug=slug) for name, slug in rows]


@router.get("", response_model=schemas.PostListResponse)
def list_posts(
    scope: Scope = Query(Scope.USER, description="user: own posts only; all: every owner (not for contributors)"),
    post_type: PostType = Query(PostType.PUBLISHED, alias="type", description="published or draft partition"),
    cursor: str | None = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.PostListResponse:
    """
    List posts, most recent first, with the draft and published counts.

    The owner predicate is rebuilt for the listing and for each count, so all
    three reflect the same scope rule.
    """
    query = db.query(models.Post).filter(
        resolve_scope(current_user, scope),
        publication_filter(post_type),
    )
    query = apply_cursor_filter(query, models.Post, cursor, "created_at", sort_desc=True)
    posts = query.order_by(models.Post.created_at.desc(), models.Post.id.desc()).limit(limit + 1).all()

    page_data = create_page_response(posts, limit, cursor)
    annotate_posts_with_view_counts(db, page_data["items"])

    return schemas.PostListResponse(
        posts=schemas.Page(
            items=[schemas.PostSummary.model_validate(post) for post in page_data["items"]],
            next_cursor=page_data["next_cursor"],
        ),
        draft_count=count_posts(db, current_user, scope, PostType.DRAFT),
        published_count=count_posts(db, current_user, scope, PostType.PUBLISHED),
    )


@router.get("/create", response_model=schemas.PostFormResponse)
def create_post_form(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.PostFormResponse:
    """Blank post with a fresh id, plus every tag and topic for the editor."""
    post_id = models.new_id()
    return schemas.PostFormResponse(
        post=schemas.PostSeed(id=post_id, slug=default_slug(post_id)),
        tags=_taxonomy_catalogue(db, models.Tag),
        topics=_taxonomy_catalogue(db, models.Topic),
    )


@router.post("/{id}", response_model=schemas.Post, status_code=status.HTTP_201_CREATED)
def save_post(
    id: str,
    payload: schemas.PostUpsert,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Post:
    """
    Create or update the post with this id.

    The id is minted by the client (see GET /posts/create). Tags and topic
    are synced to exactly the requested lists.
    """
    fields = payload.model_dump(exclude_unset=True, exclude={"tags", "topic"})

    try:
        post = upsert_post(db, id, current_user, fields, tags=payload.tags, topic=payload.topic)
    except PostNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except SlugConflict:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already taken")

    return schemas.Post.model_validate(post)


@router.get("/{id}", response_model=schemas.PostDetailResponse)
def get_post(
    id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.PostDetailResponse:
    """Post with its tags and topic, plus the tag and topic catalogues."""
    post = find_post(db, id, current_user)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")

    return schemas.PostDetailResponse(
        post=schemas.Post.model_validate(post),
        tags=_taxonomy_catalogue(db, models.Tag),
        topics=_taxonomy_catalogue(db, models.Topic),
    )


@router.get("/{id}/stats", response_model=schemas.PostStatsResponse)
def get_post_stats(
    id: str,
    days: int = Query(settings.STATS_WINDOW_DAYS, ge=1, le=settings.STATS_WINDOW_MAX_DAYS),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.PostStatsResponse:
    """
    Traffic statistics for one published post over the last `days` days.

    Drafts have no statistics and are reported as not found.
    """
    post = find_post(db, id, current_user, published_filter())
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")

    stats = stats_for_post(db, post, days, settings.get_timezone())
    return schemas.PostStatsResponse.model_validate(stats)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_post(
    id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> Response:
    """Delete a post with its tag/topic links, views and visits."""
    if not delete_post(db, id, current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")

    return Response(status_code=status.HTTP_204_NO_CONTENT)
