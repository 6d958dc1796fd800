"""Tag/topic resolution and association sync."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from inkwell.models import Post, Tag, Topic, new_id, posts_tags
from inkwell.services import taxonomy_sync
from inkwell.services.posts import upsert_post
from inkwell.services.taxonomy_sync import resolve_taxonomy_ids, sync_taxonomy


@dataclass
class Item:
    name: str
    slug: str


def _post(db: Session, owner) -> Post:
    post = Post(id="post-1", slug="post-1", title="Post", user_id=owner.id)
    db.add(post)
    db.commit()
    return post


def _tag_rows(db: Session, post_id: str) -> dict[str, datetime]:
    rows = db.execute(
        select(Tag.slug, posts_tags.c.created_at)
        .join(posts_tags, posts_tags.c.tag_id == Tag.id)
        .where(posts_tags.c.post_id == post_id)
    ).all()
    return {slug: created_at for slug, created_at in rows}


def test_existing_slug_is_reused(db: Session, contributor):
    existing = Tag(id="tag-go", name="Go", slug="go", user_id=contributor.id)
    db.add(existing)
    db.commit()

    ids = resolve_taxonomy_ids(db, Tag, [Item("Golang", "go")], contributor)
    db.commit()

    assert ids == ["tag-go"]
    assert db.query(Tag).filter(Tag.slug == "go").count() == 1
    # The existing record keeps its name
    assert db.get(Tag, "tag-go").name == "Go"


def test_missing_slug_creates_record_owned_by_actor(db: Session, contributor):
    ids = resolve_taxonomy_ids(db, Topic, [Item("Engineering", "eng")], contributor)
    db.commit()

    topic = db.get(Topic, ids[0])
    assert topic.slug == "eng"
    assert topic.name == "Engineering"
    assert topic.user_id == contributor.id


def test_duplicate_slugs_in_one_request_resolve_once(db: Session, contributor):
    ids = resolve_taxonomy_ids(db, Tag, [Item("Rust", "rust"), Item("Rust lang", "rust")], contributor)
    db.commit()

    assert len(ids) == 1
    assert db.query(Tag).filter(Tag.slug == "rust").count() == 1


def test_sync_replaces_set_and_leaves_kept_rows_untouched(db: Session, contributor):
    post = _post(db, contributor)

    first = sync_taxonomy(db, post, [Item("A", "a"), Item("B", "b")], [], contributor)
    db.commit()
    assert len(first.tags.attached) == 2
    assert first.tags.detached == []

    # Backdate the rows so a recreated row would be detectable
    backdated = datetime(2020, 1, 1, tzinfo=timezone.utc)
    db.execute(posts_tags.update().where(posts_tags.c.post_id == post.id).values(created_at=backdated))
    db.commit()
    before = _tag_rows(db, post.id)

    second = sync_taxonomy(db, post, [Item("B", "b"), Item("C", "c")], [], contributor)
    db.commit()
    after = _tag_rows(db, post.id)

    assert set(after) == {"b", "c"}
    assert after["b"] == before["b"]
    assert after["c"] - before["b"] > timedelta(days=1)

    tag_a = db.query(Tag).filter(Tag.slug == "a").one()
    tag_c = db.query(Tag).filter(Tag.slug == "c").one()
    assert second.tags.detached == [tag_a.id]
    assert second.tags.attached == [tag_c.id]
    # Detaching never deletes the tag itself
    assert db.get(Tag, tag_a.id) is not None


def test_sync_with_empty_lists_detaches_everything(db: Session, contributor):
    post = _post(db, contributor)
    sync_taxonomy(db, post, [Item("A", "a")], [Item("Eng", "eng")], contributor)
    db.commit()

    report = sync_taxonomy(db, post, [], [], contributor)
    db.commit()
    db.expire_all()

    assert len(report.tags.detached) == 1
    assert len(report.topic.detached) == 1
    assert db.get(Post, post.id).tags == []
    assert db.get(Post, post.id).topic == []


def test_upsert_reuses_tag_committed_by_concurrent_writer(db: Session, contributor, monkeypatch):
    db.add(Tag(id="winner", name="Go", slug="go", user_id=contributor.id))
    db.commit()

    resolve = taxonomy_sync.resolve_taxonomy_ids
    stale_calls = []

    def resolve_with_stale_first_lookup(session, model, requested, actor):
        requested = list(requested)
        if model is Tag and not stale_calls:
            stale_calls.append(model)
            # The slug lookup ran before "winner" was committed
            for item in requested:
                session.add(Tag(id=new_id(), name=item.name, slug=item.slug, user_id=actor.id))
            session.flush()
        return resolve(session, model, requested, actor)

    monkeypatch.setattr(taxonomy_sync, "resolve_taxonomy_ids", resolve_with_stale_first_lookup)

    post = upsert_post(db, "race-1", contributor, {"title": "Race"}, tags=[Item("Golang", "go")])

    assert len(stale_calls) == 1
    assert [tag.id for tag in post.tags] == ["winner"]
    assert db.query(Tag).filter(Tag.slug == "go").count() == 1
    assert db.get(Tag, "winner").name == "Go"
