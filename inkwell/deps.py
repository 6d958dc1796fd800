"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from .db import SessionLocal


def get_db() -> Iterator[Session]:
    """
    One session per request.

    Work a handler left uncommitted is rolled back if the handler raises;
    services commit their own writes.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
