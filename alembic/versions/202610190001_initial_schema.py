"""initial schema: users, posts, tags, topics, views, visits

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "202610190001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("avatar", sa.String(length=500), nullable=True),
        sa.Column("password", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="contributor"),
        sa.Column("locale", sa.String(length=10), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_created_at", "users", ["created_at"])
    op.create_index("ix_users_deleted_at", "users", ["deleted_at"])

    op.create_table(
        "posts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("featured_image", sa.String(length=500), nullable=True),
        sa.Column("featured_image_caption", sa.String(length=500), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_posts_slug", "posts", ["slug"], unique=True)
    op.create_index("ix_posts_published_at", "posts", ["published_at"])
    op.create_index("ix_posts_user_id", "posts", ["user_id"])
    op.create_index("ix_posts_created_at", "posts", ["created_at"])
    op.create_index("ix_posts_user_created", "posts", ["user_id", sa.text("created_at DESC")])

    for name in ("tags", "topics"):
        op.create_table(
            name,
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("slug", sa.String(length=255), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
            *_timestamps(),
        )
        op.create_index(f"ix_{name}_slug", name, ["slug"], unique=True)
        op.create_index(f"ix_{name}_user_id", name, ["user_id"])
        op.create_index(f"ix_{name}_created_at", name, ["created_at"])

    for table, target, column in (("posts_tags", "tags", "tag_id"), ("posts_topics", "topics", "topic_id")):
        op.create_table(
            table,
            sa.Column("post_id", sa.String(length=36), sa.ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
            sa.Column(column, sa.String(length=36), sa.ForeignKey(f"{target}.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )

    for name in ("views", "visits"):
        op.create_table(
            name,
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("post_id", sa.String(length=36), sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
            sa.Column("ip", sa.String(length=64), nullable=True),
            sa.Column("agent", sa.Text(), nullable=True),
            sa.Column("referer", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index(f"ix_{name}_post_id", name, ["post_id"])
        op.create_index(f"ix_{name}_created_at", name, ["created_at"])
        op.create_index(f"ix_{name}_post_created", name, ["post_id", "created_at"])


def downgrade() -> None:
    for name in ("visits", "views"):
        op.drop_index(f"ix_{name}_post_created", table_name=name)
        op.drop_index(f"ix_{name}_created_at", table_name=name)
        op.drop_index(f"ix_{name}_post_id", table_name=name)
        op.drop_table(name)

    op.drop_table("posts_topics")
    op.drop_table("posts_tags")

    for name in ("topics", "tags"):
        op.drop_index(f"ix_{name}_created_at", table_name=name)
        op.drop_index(f"ix_{name}_user_id", table_name=name)
        op.drop_index(f"ix_{name}_slug", table_name=name)
        op.drop_table(name)

    op.drop_index("ix_posts_user_created", table_name="posts")
    op.drop_index("ix_posts_created_at", table_name="posts")
    op.drop_index("ix_posts_user_id", table_name="posts")
    op.drop_index("ix_posts_published_at", table_name="posts")
    op.drop_index("ix_posts_slug", table_name="posts")
    op.drop_table("posts")

    op.drop_index("ix_users_deleted_at", table_name="users")
    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
