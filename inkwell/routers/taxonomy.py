"""Tag and topic management endpoints (editors and admins)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import Table
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas, settings
from ..auth import require_editor
from ..deps import get_db
from ..pagination import apply_cursor_filter, create_page_response
from ..services.counts import annotate_taxonomy_with_post_counts

logger = logging.getLogger(__name__)


def build_router(model: type[models.Tag] | type[models.Topic], table: Table, target_column: str, prefix: str, label: str) -> APIRouter:
    """
    CRUD router for one taxonomy model.

    Tags and topics share their shape, so both routers come from here.
    """
    router = APIRouter(prefix=prefix, tags=[f"{label}s"])
    not_found = f"{label} not found"

    def _find(db: Session, record_id: str):
        return db.query(model).filter(model.id == record_id).first()

    @router.get("", response_model=schemas.Page[schemas.TaxonomyOut])
    def list_records(
        cursor: str | None = None,
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
        db: Session = Depends(get_db),
        current_user: models.User = Depends(require_editor),
    ) -> schemas.Page[schemas.TaxonomyOut]:
        query = apply_cursor_filter(db.query(model), model, cursor, "created_at", sort_desc=True)
        records = query.order_by(model.created_at.desc(), model.id.desc()).limit(limit + 1).all()

        page_data = create_page_response(records, limit, cursor)
        annotate_taxonomy_with_post_counts(db, table, target_column, page_data["items"])

        return schemas.Page(
            items=[schemas.TaxonomyOut.model_validate(record) for record in page_data["items"]],
            next_cursor=page_data["next_cursor"],
        )

    @router.get("/create", response_model=schemas.TaxonomyFormResponse)
    def create_form(
        current_user: models.User = Depends(require_editor),
    ) -> schemas.TaxonomyFormResponse:
        return schemas.TaxonomyFormResponse(id=models.new_id())

    @router.post("/{id}", response_model=schemas.TaxonomyOut, status_code=status.HTTP_201_CREATED)
    def save_record(
        id: str,
        payload: schemas.TaxonomyUpsert,
        db: Session = Depends(get_db),
        current_user: models.User = Depends(require_editor),
    ) -> schemas.TaxonomyOut:
        """Create or update by client-supplied id; the creator becomes the owner."""
        record = _find(db, id)
        if record is None:
            record = model(id=id, user_id=current_user.id)
            db.add(record)

        record.name = payload.name
        record.slug = payload.slug

        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"{label} {id}: slug {payload.slug!r} already taken: {e.orig}")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already taken")

        db.refresh(record)
        annotate_taxonomy_with_post_counts(db, table, target_column, [record])
        return schemas.TaxonomyOut.model_validate(record)

    @router.get("/{id}", response_model=schemas.TaxonomyOut)
    def get_record(
        id: str,
        db: Session = Depends(get_db),
        current_user: models.User = Depends(require_editor),
    ) -> schemas.TaxonomyOut:
        record = _find(db, id)
        if not record:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)

        annotate_taxonomy_with_post_counts(db, table, target_column, [record])
        return schemas.TaxonomyOut.model_validate(record)

    @router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_record(
        id: str,
        db: Session = Depends(get_db),
        current_user: models.User = Depends(require_editor),
    ) -> Response:
        """Hard delete; the posts lose the association, nothing else."""
        record = _find(db, id)
        if not record:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)

        db.delete(record)
        db.commit()
        logger.info(f"Deleted {label.lower()} {id} (user {current_user.id})")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


tags_router = build_router(models.Tag, models.posts_tags, "tag_id", "/tags", "Tag")
topics_router = build_router(models.Topic, models.posts_topics, "topic_id", "/topics", "Topic")
