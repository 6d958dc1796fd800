"""Search rows for posts, tags, topics and users."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from inkwell.models import Post, Role, Tag, Topic
from inkwell.services.search import PostHit, SearchRow, TagHit, TopicHit, UserHit, project
from inkwell.utils.dates import utc_now

BASE = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "hit,expected",
    [
        (PostHit(id="1", title="Hello"), SearchRow(id="1", name="Hello", type="Post", route="edit-post")),
        (TagHit(id="2", name="Go"), SearchRow(id="2", name="Go", type="Tag", route="edit-tag")),
        (TopicHit(id="3", name="Eng"), SearchRow(id="3", name="Eng", type="Topic", route="edit-topic")),
        (UserHit(id="4", name="Ada", email="ada@example.com"), SearchRow(id="4", name="Ada", type="User", route="edit-user")),
    ],
)
def test_project(hit, expected):
    assert project(hit) == expected


def test_project_rejects_unknown_hits():
    with pytest.raises(TypeError):
        project(object())


def test_post_search_is_owner_scoped_for_contributors(client: TestClient, db: Session, make_user, auth_headers):
    admin = make_user("Admin", Role.ADMIN)
    writer = make_user("Writer", Role.CONTRIBUTOR)
    db.add_all(
        [
            Post(id="old", slug="old", title="Old", user_id=writer.id, created_at=BASE),
            Post(id="new", slug="new", title="New", user_id=writer.id, created_at=BASE + timedelta(days=1)),
            Post(id="adm", slug="adm", title="Admin's", user_id=admin.id, created_at=BASE + timedelta(days=2)),
        ]
    )
    db.commit()

    writer_rows = client.get("/search/posts", headers=auth_headers(writer)).json()
    admin_rows = client.get("/search/posts", headers=auth_headers(admin)).json()

    assert writer_rows == [
        {"id": "new", "name": "New", "type": "Post", "route": "edit-post"},
        {"id": "old", "name": "Old", "type": "Post", "route": "edit-post"},
    ]
    assert [row["id"] for row in admin_rows] == ["adm", "new", "old"]


def test_tag_and_topic_search_are_global(client: TestClient, db: Session, make_user, auth_headers):
    owner = make_user("Owner", Role.EDITOR)
    reader = make_user("Reader", Role.CONTRIBUTOR)
    db.add(Tag(id="t1", name="Go", slug="go", user_id=owner.id, created_at=BASE))
    db.add(Tag(id="t2", name="Rust", slug="rust", user_id=owner.id, created_at=BASE + timedelta(hours=1)))
    db.add(Topic(id="c1", name="Eng", slug="eng", user_id=owner.id))
    db.commit()

    tags = client.get("/search/tags", headers=auth_headers(reader)).json()
    topics = client.get("/search/topics", headers=auth_headers(reader)).json()

    assert [row["name"] for row in tags] == ["Rust", "Go"]
    assert {row["route"] for row in tags} == {"edit-tag"}
    assert topics == [{"id": "c1", "name": "Eng", "type": "Topic", "route": "edit-topic"}]


def test_user_search_skips_deleted_accounts(client: TestClient, db: Session, make_user, auth_headers):
    actor = make_user("Actor", Role.ADMIN)
    gone = make_user("Gone", Role.CONTRIBUTOR)
    gone.deleted_at = utc_now()
    db.commit()

    rows = client.get("/search/users", headers=auth_headers(actor)).json()

    assert [row["name"] for row in rows] == ["Actor"]
    assert rows[0]["type"] == "User"
