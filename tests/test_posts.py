"""Post CRUD endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from inkwell.models import Post, Role, Tag, View, Visit
from inkwell.utils.dates import utc_now


def _published(days_ago: int = 1) -> str:
    return (utc_now() - timedelta(days=days_ago)).isoformat()


def _seed_post(db: Session, owner, post_id: str, published: bool = True, created_at: datetime | None = None) -> Post:
    post = Post(
        id=post_id,
        slug=f"slug-{post_id}",
        title=f"Title {post_id}",
        body="<p>Some words here</p>",
        user_id=owner.id,
        published_at=utc_now() - timedelta(days=1) if published else None,
        created_at=created_at or utc_now(),
    )
    db.add(post)
    db.commit()
    return post


def test_posts_require_auth(client: TestClient):
    assert client.get("/posts").status_code == 401
    assert client.post("/posts/P1", json={"title": "x"}).status_code == 401


def test_create_then_resync_tags(client: TestClient, contributor, auth_headers):
    headers = auth_headers(contributor)

    response = client.post(
        "/posts/P1",
        headers=headers,
        json={
            "title": "Hello",
            "body": "<p>Hello world</p>",
            "tags": [{"name": "Go", "slug": "go"}],
            "topic": [{"name": "Eng", "slug": "eng"}],
        },
    )
    assert response.status_code == 201
    created = response.json()
    assert created["id"] == "P1"
    assert created["user_id"] == contributor.id
    assert [tag["slug"] for tag in created["tags"]] == ["go"]

    shown = client.get("/posts/P1", headers=headers)
    assert shown.status_code == 200
    body = shown.json()
    assert [tag["slug"] for tag in body["post"]["tags"]] == ["go"]
    assert [topic["slug"] for topic in body["post"]["topic"]] == ["eng"]
    assert body["post"]["user_id"] == contributor.id
    assert body["tags"] == [{"name": "Go", "slug": "go"}]
    assert body["topics"] == [{"name": "Eng", "slug": "eng"}]

    response = client.post(
        "/posts/P1",
        headers=headers,
        json={"tags": [{"name": "Rust", "slug": "rust"}], "topic": [{"name": "Eng", "slug": "eng"}]},
    )
    assert response.status_code == 201

    body = client.get("/posts/P1", headers=headers).json()
    assert [tag["slug"] for tag in body["post"]["tags"]] == ["rust"]
    # Fields not sent are left alone
    assert body["post"]["title"] == "Hello"


def test_new_post_gets_default_slug_and_title(client: TestClient, contributor, auth_headers):
    response = client.post("/posts/abc-123", headers=auth_headers(contributor), json={})

    assert response.status_code == 201
    data = response.json()
    assert data["slug"] == "post-abc-123"
    assert data["title"] == ""
    assert data["is_published"] is False
    assert data["read_time"] == "1 min read"


def test_update_keeps_original_owner(client: TestClient, db: Session, contributor, admin, auth_headers):
    _seed_post(db, contributor, "P2")

    response = client.post("/posts/P2", headers=auth_headers(admin), json={"title": "Edited by admin"})

    assert response.status_code == 201
    assert response.json()["user_id"] == contributor.id
    assert response.json()["title"] == "Edited by admin"


def test_contributor_cannot_touch_other_posts(client: TestClient, db: Session, make_user, auth_headers):
    owner = make_user("Owner", Role.CONTRIBUTOR)
    intruder = make_user("Intruder", Role.CONTRIBUTOR)
    _seed_post(db, owner, "P3")
    headers = auth_headers(intruder)

    assert client.get("/posts/P3", headers=headers).status_code == 404
    assert client.get("/posts/P3/stats", headers=headers).status_code == 404
    assert client.delete("/posts/P3", headers=headers).status_code == 404

    # An upsert on a foreign id must not hijack the post
    response = client.post("/posts/P3", headers=headers, json={"title": "Mine now"})
    assert response.status_code == 404

    db.expire_all()
    post = db.get(Post, "P3")
    assert post.user_id == owner.id
    assert post.title == "Title P3"


def test_list_scope_type_and_counts(client: TestClient, db: Session, admin, contributor, auth_headers):
    _seed_post(db, admin, "A1")
    _seed_post(db, admin, "A2", published=False)
    _seed_post(db, contributor, "C1")
    _seed_post(db, contributor, "C2")

    own = client.get("/posts", headers=auth_headers(admin)).json()
    assert [post["id"] for post in own["posts"]["items"]] == ["A1"]
    assert own["published_count"] == 1
    assert own["draft_count"] == 1

    everyone = client.get("/posts", params={"scope": "all"}, headers=auth_headers(admin)).json()
    assert {post["id"] for post in everyone["posts"]["items"]} == {"A1", "C1", "C2"}
    assert everyone["published_count"] == 3
    assert everyone["draft_count"] == 1

    drafts = client.get("/posts", params={"scope": "all", "type": "draft"}, headers=auth_headers(admin)).json()
    assert [post["id"] for post in drafts["posts"]["items"]] == ["A2"]

    # scope=all is ignored for contributors
    mine = client.get("/posts", params={"scope": "all"}, headers=auth_headers(contributor)).json()
    assert {post["id"] for post in mine["posts"]["items"]} == {"C1", "C2"}
    assert mine["published_count"] == 2
    assert mine["draft_count"] == 0


def test_list_includes_view_counts(client: TestClient, db: Session, contributor, auth_headers):
    _seed_post(db, contributor, "V1")
    db.add_all([View(post_id="V1", created_at=utc_now()) for _ in range(3)])
    db.commit()

    items = client.get("/posts", headers=auth_headers(contributor)).json()["posts"]["items"]
    assert items[0]["views_count"] == 3


def test_list_paginates_with_cursor(client: TestClient, db: Session, contributor, auth_headers):
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for index in range(3):
        _seed_post(db, contributor, f"page-{index}", created_at=base + timedelta(hours=index))
    headers = auth_headers(contributor)

    first = client.get("/posts", params={"limit": 2}, headers=headers).json()["posts"]
    assert [post["id"] for post in first["items"]] == ["page-2", "page-1"]
    assert first["next_cursor"]

    second = client.get("/posts", params={"limit": 2, "cursor": first["next_cursor"]}, headers=headers).json()["posts"]
    assert [post["id"] for post in second["items"]] == ["page-0"]
    assert second["next_cursor"] is None


def test_create_form_seed(client: TestClient, db: Session, contributor, auth_headers):
    db.add(Tag(id="t1", name="Python", slug="python", user_id=contributor.id))
    db.commit()

    data = client.get("/posts/create", headers=auth_headers(contributor)).json()

    assert data["post"]["slug"] == f"post-{data['post']['id']}"
    assert data["post"]["title"] == ""
    assert data["tags"] == [{"name": "Python", "slug": "python"}]
    assert data["topics"] == []


def test_duplicate_slug_is_a_conflict(client: TestClient, db: Session, contributor, auth_headers):
    _seed_post(db, contributor, "S1")

    response = client.post("/posts/S2", headers=auth_headers(contributor), json={"slug": "slug-S1"})

    assert response.status_code == 409
    db.expire_all()
    assert db.get(Post, "S2") is None


def test_delete_removes_post_and_traffic(client: TestClient, db: Session, contributor, auth_headers):
    headers = auth_headers(contributor)
    client.post("/posts/D1", headers=headers, json={"published_at": _published(), "tags": [{"name": "Go", "slug": "go"}]})
    db.add(View(post_id="D1", created_at=utc_now()))
    db.add(Visit(post_id="D1", created_at=utc_now()))
    db.commit()

    response = client.delete("/posts/D1", headers=headers)

    assert response.status_code == 204
    assert client.get("/posts/D1", headers=headers).status_code == 404
    db.expire_all()
    assert db.query(View).count() == 0
    assert db.query(Visit).count() == 0
    # The tag survives, only the link is gone
    assert db.query(Tag).filter(Tag.slug == "go").count() == 1


def test_delete_missing_post(client: TestClient, contributor, auth_headers):
    assert client.delete("/posts/nope", headers=auth_headers(contributor)).status_code == 404


@pytest.mark.parametrize("words,expected", [(10, "1 min read"), (250, "1 min read"), (251, "2 min read"), (1000, "4 min read")])
def test_read_time(words, expected):
    post = Post(body="<p>" + " ".join(["word"] * words) + "</p>")
    assert post.read_time == expected
