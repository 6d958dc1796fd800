from __future__ import annotations

import math
import re
import uuid
from enum import Enum

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .db import Base
from .utils.dates import utc_now


def new_id() -> str:
    """Fresh UUID string used as a primary key."""
    return str(uuid.uuid4())


class Role(str, Enum):
    """User roles, lowest privilege first."""

    CONTRIBUTOR = "contributor"
    EDITOR = "editor"
    ADMIN = "admin"


# Words per minute used for the read time estimate
WORDS_PER_MINUTE = 250

_TAG_RE = re.compile(r"<[^>]+>")


# ============================================================================
# ASSOCIATIONS
# ============================================================================

# Association rows carry created_at so a sync that leaves a row alone is observable.
posts_tags = Table(
    "posts_tags",
    Base.metadata,
    Column("post_id", String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(36), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

posts_topics = Table(
    "posts_topics",
    Base.metadata,
    Column("post_id", String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("topic_id", String(36), ForeignKey("topics.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


# ============================================================================
# CORE ENTITIES
# ============================================================================


class User(Base):
    """Admin account. Soft-deletable: deleted_at is the tombstone."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(255), unique=True, nullable=True)
    summary = Column(Text, nullable=True)
    avatar = Column(String(500), nullable=True)
    password = Column(String(255), nullable=True)  # passlib bcrypt hash
    role = Column(String(20), nullable=False, default=Role.CONTRIBUTOR.value, index=True)
    locale = Column(String(10), nullable=True)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now(), index=True
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    # Relationships
    posts = relationship("Post", back_populates="owner", foreign_keys="Post.user_id")

    @property
    def is_contributor(self) -> bool:
        return self.role == Role.CONTRIBUTOR.value

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


class Post(Base):
    """Blog post. The id is minted by the client when the editor opens a new post."""

    __tablename__ = "posts"

    id = Column(String(36), primary_key=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False, default="")
    summary = Column(Text, nullable=True)
    body = Column(Text, nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True, index=True)
    featured_image = Column(String(500), nullable=True)
    featured_image_caption = Column(String(500), nullable=True)
    meta = Column(JSON, nullable=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now(), index=True
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)

    # Relationships
    owner = relationship("User", back_populates="posts", foreign_keys=[user_id])
    tags = relationship("Tag", secondary=posts_tags, back_populates="posts", order_by="Tag.name")
    topic = relationship("Topic", secondary=posts_topics, back_populates="posts", order_by="Topic.name")
    views = relationship("View", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)
    visits = relationship("Visit", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (Index("ix_posts_user_created", user_id, created_at.desc()),)

    @property
    def is_published(self) -> bool:
        from .utils.scope import is_published

        return is_published(self)

    @property
    def read_time(self) -> str:
        """Estimated reading time, e.g. "4 min read"."""
        text = _TAG_RE.sub(" ", self.body or "")
        words = len(text.split())
        minutes = max(1, math.ceil(words / WORDS_PER_MINUTE))
        return f"{minutes} min read"


class Tag(Base):
    """Tag attached to posts; created lazily on first use."""

    __tablename__ = "tags"

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now(), index=True
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)

    posts = relationship("Post", secondary=posts_tags, back_populates="tags")


class Topic(Base):
    """Topic of a post; a post has one in practice."""

    __tablename__ = "topics"

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now(), index=True
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)

    posts = relationship("Post", secondary=posts_topics, back_populates="topic")


# ============================================================================
# TRAFFIC
# ============================================================================


class View(Base):
    """Raw page render event for a post. Append-only."""

    __tablename__ = "views"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    ip = Column(String(64), nullable=True)  # SHA256 hash of the client IP
    agent = Column(Text, nullable=True)
    referer = Column(String(255), nullable=True)  # Referer host only

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now(), index=True
    )

    post = relationship("Post", back_populates="views")

    __table_args__ = (Index("ix_views_post_created", post_id, created_at),)


class Visit(Base):
    """Unique visit for a post: at most one per client IP per day. Append-only."""

    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    ip = Column(String(64), nullable=True)
    agent = Column(Text, nullable=True)
    referer = Column(String(255), nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now(), index=True
    )

    post = relationship("Post", back_populates="visits")

    __table_args__ = (Index("ix_visits_post_created", post_id, created_at),)
