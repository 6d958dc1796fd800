"""Quick-search endpoints for the admin's search box."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..services.search import SearchKind, search

router = APIRouter(prefix="/search", tags=["Search"])


def _rows(db: Session, kind: SearchKind, actor: models.User) -> list[schemas.SearchResult]:
    return [schemas.SearchResult.model_validate(row) for row in search(db, kind, actor)]


@router.get("/posts", response_model=list[schemas.SearchResult])
def search_posts(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> list[schemas.SearchResult]:
    """Posts visible to the actor (contributors see only their own)."""
    return _rows(db, SearchKind.POST, current_user)


@router.get("/tags", response_model=list[schemas.SearchResult])
def search_tags(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> list[schemas.SearchResult]:
    return _rows(db, SearchKind.TAG, current_user)


@router.get("/topics", response_model=list[schemas.SearchResult])
def search_topics(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> list[schemas.SearchResult]:
    return _rows(db, SearchKind.TOPIC, current_user)


@router.get("/users", response_model=list[schemas.SearchResult])
def search_users(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> list[schemas.SearchResult]:
    """Live (not soft-deleted) accounts."""
    return _rows(db, SearchKind.USER, current_user)
