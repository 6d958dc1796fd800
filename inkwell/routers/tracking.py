"""Post view tracking endpoint, called by the public blog on each render."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from .. import models, settings
from ..deps import get_db
from ..utils.scope import published_filter
from ..utils.view_tracking import record_post_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/track", tags=["Tracking"])


@router.post("/posts/{id}", status_code=status.HTTP_204_NO_CONTENT)
def track_post_view(
    id: str,
    request: Request,
    db: Session = Depends(get_db),
) -> Response:
    """
    Record a view of a published post, and a visit on the client's first view of the day.

    **Public endpoint** - No authentication required.

    Returns:
        204 No Content; 404 when the post is missing or not published
    """
    post = db.query(models.Post).filter(models.Post.id == id, published_filter()).first()
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")

    record_post_view(db, post, request, settings.get_timezone())
    return Response(status_code=status.HTTP_204_NO_CONTENT)
