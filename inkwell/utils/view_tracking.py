"""
Traffic capture for published posts.

Every render records a View; the first render per client IP per calendar
day (in the configured timezone) also records a Visit. Both feed the stats
aggregator. Client IPs are stored only as SHA256 digests.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone, tzinfo
from urllib.parse import urlparse

from fastapi import Request
from sqlalchemy.orm import Session

from .. import models
from .dates import utc_now

logger = logging.getLogger(__name__)

# Referer hosts are truncated to the column size
MAX_REFERER_LENGTH = 255


def hash_ip(ip: str | None) -> str:
    """SHA256 hex digest of a client IP ("unknown" when absent)."""
    return hashlib.sha256((ip or "unknown").encode("utf-8")).hexdigest()


def extract_referrer_domain(referrer: str | None) -> str | None:
    """
    Host of a Referer URL without a leading "www.", e.g. "google.com".

    Returns None for a missing or unparseable header.
    """
    if not referrer:
        return None
    try:
        host = urlparse(referrer).netloc
    except ValueError:
        return None

    host = host.removeprefix("www.")
    return host[:MAX_REFERER_LENGTH] or None


def get_client_ip(request: Request) -> str:
    """
    Client address, honouring reverse proxies.

    The first X-Forwarded-For entry wins, then X-Real-IP, then the socket peer.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


@dataclass(frozen=True)
class ClientFingerprint:
    """What a traffic row stores about the reader."""

    ip: str
    agent: str | None
    referer: str | None

    @classmethod
    def from_request(cls, request: Request) -> "ClientFingerprint":
        return cls(
            ip=hash_ip(get_client_ip(request)),
            agent=request.headers.get("User-Agent"),
            referer=extract_referrer_domain(request.headers.get("Referer")),
        )


def _visited_today(db: Session, post_id: str, ip_hash: str, tz: tzinfo, now: datetime) -> bool:
    day_start = datetime.combine(now.astimezone(tz).date(), time.min, tzinfo=tz).astimezone(timezone.utc)
    return (
        db.query(models.Visit.id)
        .filter(
            models.Visit.post_id == post_id,
            models.Visit.ip == ip_hash,
            models.Visit.created_at >= day_start,
        )
        .first()
        is not None
    )


def record_post_view(
    db: Session,
    post: models.Post,
    request: Request,
    tz: tzinfo,
    now: datetime | None = None,
) -> bool:
    """
    Record a view of a published post, plus a visit on the client's first view today.

    Tracking never fails the request: database errors are logged and the
    session rolled back.

    Args:
        db: Database session
        post: Published post being rendered
        request: Incoming request (IP, user agent, referer)
        tz: Timezone whose calendar day bounds a visit
        now: Event time (defaults to the current time)

    Returns:
        True when a visit was recorded along with the view
    """
    now = now or utc_now()
    client = ClientFingerprint.from_request(request)
    row = {"post_id": post.id, "ip": client.ip, "agent": client.agent, "referer": client.referer, "created_at": now}

    try:
        db.add(models.View(**row))
        visit_recorded = not _visited_today(db, post.id, client.ip, tz, now)
        if visit_recorded:
            db.add(models.Visit(**row))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.warning(f"Failed to record view for post {post.id}: {e}", exc_info=True)
        return False

    logger.debug(f"Recorded view for post {post.id} (visit={visit_recorded}, referer={client.referer})")
    return visit_recorded
