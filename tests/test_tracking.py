"""View and visit capture."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from inkwell.models import Post, View, Visit
from inkwell.utils.dates import utc_now
from inkwell.utils.view_tracking import extract_referrer_domain, hash_ip


def _published_post(db: Session, owner, post_id: str = "tracked") -> Post:
    post = Post(id=post_id, slug=post_id, title="Tracked", user_id=owner.id, published_at=utc_now() - timedelta(days=1))
    db.add(post)
    db.commit()
    return post


def test_extract_referrer_domain():
    assert extract_referrer_domain("https://www.google.com/search?q=x") == "google.com"
    assert extract_referrer_domain("https://news.example.com/a") == "news.example.com"
    assert extract_referrer_domain(None) is None
    assert extract_referrer_domain("not a url") is None


def test_hash_ip_is_stable_and_opaque():
    assert hash_ip("203.0.113.7") == hash_ip("203.0.113.7")
    assert hash_ip("203.0.113.7") != hash_ip("203.0.113.8")
    assert len(hash_ip("203.0.113.7")) == 64


def test_one_visit_per_ip_per_day(client: TestClient, db: Session, contributor):
    _published_post(db, contributor)
    headers = {"X-Forwarded-For": "203.0.113.7", "Referer": "https://www.example.org/list"}

    for _ in range(3):
        assert client.post("/track/posts/tracked", headers=headers).status_code == 204
    assert client.post("/track/posts/tracked", headers={"X-Forwarded-For": "198.51.100.1"}).status_code == 204

    assert db.query(View).count() == 4
    assert db.query(Visit).count() == 2
    referers = {referer for (referer,) in db.query(View.referer).all()}
    assert referers == {"example.org", None}


def test_visit_from_yesterday_does_not_block_today(client: TestClient, db: Session, contributor):
    _published_post(db, contributor)
    yesterday = datetime.combine(utc_now().date(), datetime.min.time(), tzinfo=timezone.utc) - timedelta(hours=1)
    db.add(Visit(post_id="tracked", ip=hash_ip("203.0.113.7"), created_at=yesterday))
    db.commit()

    client.post("/track/posts/tracked", headers={"X-Forwarded-For": "203.0.113.7"})

    assert db.query(Visit).count() == 2


def test_drafts_and_missing_posts_are_not_tracked(client: TestClient, db: Session, contributor):
    db.add(Post(id="draft", slug="draft", title="Draft", user_id=contributor.id))
    db.commit()

    assert client.post("/track/posts/draft").status_code == 404
    assert client.post("/track/posts/missing").status_code == 404
    assert db.query(View).count() == 0
