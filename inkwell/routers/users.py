"""User management endpoints (admin only)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import models, schemas, settings
from ..auth import require_admin
from ..deps import get_db
from ..pagination import apply_cursor_filter, create_page_response
from ..services.counts import annotate_posts_with_view_counts, annotate_users_with_post_counts
from ..services.users import UserConflict, find_user, soft_delete_user, upsert_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=schemas.Page[schemas.UserOut])
def list_users(
    cursor: str | None = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
) -> schemas.Page[schemas.UserOut]:
    """Live accounts, most recent first, with their post counts."""
    query = db.query(models.User).filter(models.User.deleted_at.is_(None))
    query = apply_cursor_filter(query, models.User, cursor, "created_at", sort_desc=True)
    users = query.order_by(models.User.created_at.desc(), models.User.id.desc()).limit(limit + 1).all()

    page_data = create_page_response(users, limit, cursor)
    annotate_users_with_post_counts(db, page_data["items"])

    return schemas.Page(
        items=[schemas.UserOut.model_validate(user) for user in page_data["items"]],
        next_cursor=page_data["next_cursor"],
    )


@router.get("/create", response_model=schemas.UserFormResponse)
def create_user_form(
    current_user: models.User = Depends(require_admin),
) -> schemas.UserFormResponse:
    """Blank account with a fresh id and the default role."""
    return schemas.UserFormResponse(id=models.new_id(), locale=settings.FALLBACK_LOCALE)


@router.post("/{id}", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def save_user(
    id: str,
    payload: schemas.UserUpsert,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
) -> schemas.UserOut:
    """
    Create, update or restore the account with this id.

    If a deleted account already uses the email, that account is restored
    and returned as it was instead of creating a second one.
    """
    try:
        user = upsert_user(db, id, payload.model_dump(exclude_unset=True))
    except UserConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    annotate_users_with_post_counts(db, [user])
    return schemas.UserOut.model_validate(user)


@router.get("/{id}", response_model=schemas.UserOut | None)
def get_user(
    id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
):
    """Account with its post count; a missing account is a 404 with a null body."""
    user = find_user(db, id)
    if user is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=None)

    annotate_users_with_post_counts(db, [user])
    return schemas.UserOut.model_validate(user)


@router.get("/{id}/posts", response_model=schemas.Page[schemas.PostSummary] | None)
def get_user_posts(
    id: str,
    cursor: str | None = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
) -> schemas.Page[schemas.PostSummary] | None:
    """Posts owned by the account with their view counts; null when the account is missing."""
    user = find_user(db, id)
    if user is None:
        return None

    query = db.query(models.Post).filter(models.Post.user_id == user.id)
    query = apply_cursor_filter(query, models.Post, cursor, "created_at", sort_desc=True)
    posts = query.order_by(models.Post.created_at.desc(), models.Post.id.desc()).limit(limit + 1).all()

    page_data = create_page_response(posts, limit, cursor)
    annotate_posts_with_view_counts(db, page_data["items"])

    return schemas.Page(
        items=[schemas.PostSummary.model_validate(post) for post in page_data["items"]],
        next_cursor=page_data["next_cursor"],
    )


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin),
) -> Response:
    """Soft-delete an account. Nobody can delete their own account."""
    if current_user.id == id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot delete your own account")

    user = find_user(db, id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    soft_delete_user(db, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
