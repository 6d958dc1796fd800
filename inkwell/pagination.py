"""
Keyset (cursor) pagination for listings ordered by (sort field, id).

A cursor is URL-safe base64 of {"id": <last id>, "sort": <last sort value>};
datetimes travel as ISO 8601 in UTC. Listings fetch limit + 1 rows so the
page builder can tell whether another page exists without a COUNT.
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime
from typing import Any

from sqlalchemy import and_, or_

from .utils.dates import as_utc


def encode_cursor(last_id: str, sort_value: Any = None) -> str:
    """Cursor pointing just past the given row, e.g. encode_cursor(post.id, post.created_at)."""
    payload: dict[str, Any] = {"id": last_id}
    if isinstance(sort_value, datetime):
        payload["sort"] = as_utc(sort_value).isoformat()
    elif sort_value is not None:
        payload["sort"] = sort_value

    raw = json.dumps(payload, default=str).encode()
    return base64.urlsafe_b64encode(raw).decode()


def decode_cursor(cursor: str | None) -> tuple[str, Any] | None:
    """(last_id, sort_value) from a cursor; None when absent or malformed."""
    if not cursor:
        return None

    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    if not isinstance(payload, dict) or not payload.get("id"):
        return None
    return payload["id"], payload.get("sort")


def apply_cursor_filter(query, model_class, cursor: str | None, sort_field: str = "created_at", sort_desc: bool = True):
    """
    Restrict a query to the rows after the cursor.

    For a descending listing this is (sort, id) < (last_sort, last_id),
    spelled out with OR/AND so it works on every backend. A malformed cursor
    yields the first page.

    Args:
        query: SQLAlchemy query object
        model_class: Model whose columns are compared
        cursor: Cursor from the previous page, or None
        sort_field: Column the listing is ordered by
        sort_desc: Whether the listing is ordered newest first
    """
    decoded = decode_cursor(cursor)
    if decoded is None:
        return query

    last_id, sort_value = decoded
    id_column = model_class.id
    sort_column = getattr(model_class, sort_field)

    if sort_value is None:
        return query.filter(id_column < last_id if sort_desc else id_column > last_id)

    if sort_column.type.python_type is datetime:
        try:
            sort_value = datetime.fromisoformat(sort_value)
        except (TypeError, ValueError):
            return query

    if sort_desc:
        after = or_(sort_column < sort_value, and_(sort_column == sort_value, id_column < last_id))
    else:
        after = or_(sort_column > sort_value, and_(sort_column == sort_value, id_column > last_id))
    return query.filter(after)


def create_page_response(items: list, limit: int, cursor: str | None = None, sort_field: str = "created_at") -> dict:
    """
    Trim a limit + 1 fetch to one page.

    Returns:
        {"items": <at most limit rows>, "next_cursor": <cursor or None>}
    """
    if len(items) <= limit:
        return {"items": items, "next_cursor": None}

    items = items[:limit]
    last = items[-1]
    return {"items": items, "next_cursor": encode_cursor(str(last.id), getattr(last, sort_field, None))}
