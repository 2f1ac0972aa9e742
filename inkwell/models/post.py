"""
Post and PostVersion Models

A Post is the mutable, current-state record of an article. Every edit first
copies the post's editable fields into an immutable PostVersion, numbered
per post starting at 1.

Usage:
    from inkwell.models.post import Post, PostVersion

    post = Post(
        title="Hello",
        slug="hello",
        excerpt="First post",
        tags=["intro"],
        content=[{"type": "text", "content": "<p>Hi there</p>"}],
    )
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlmodel import Column, Field, SQLModel

from inkwell.core.typing import utc_now


class Post(SQLModel, table=True):
    """
    Current state of a blog post.

    Attributes:
        id: Primary key
        title: Post title
        slug: URL-friendly unique identifier derived from the title
        content: Ordered list of block dicts (text, image, cta, youtube)
        excerpt: Short summary shown in listings
        tags: Display-ordered list of tags
        is_draft: Hidden from readers while True
        publish_at: With is_draft=True, when the sweeper should publish
        meta_title / meta_description / social_image_id / canonical_url: SEO
        views / share_count: Reader counters, incremented atomically
        reading_time_minutes: Derived from content on every content write
    """

    __tablename__ = "post"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=500)
    slug: str = Field(unique=True, index=True, max_length=200)
    content: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    excerpt: str = Field(sa_column=Column(Text, nullable=False))
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # Lifecycle
    is_draft: bool = Field(default=True)
    publish_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # SEO
    meta_title: Optional[str] = Field(default=None, max_length=500)
    meta_description: Optional[str] = Field(default=None, max_length=160)
    social_image_id: Optional[int] = Field(default=None)
    canonical_url: Optional[str] = Field(default=None, max_length=2000)

    # Analytics
    views: int = Field(default=0)
    share_count: int = Field(default=0)
    reading_time_minutes: int = Field(default=0)

    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    __table_args__ = (
        # Sweeper predicate: is_draft AND publish_at < now
        Index("ix_post_draft_publish_at", "is_draft", "publish_at"),
        Index("ix_post_created_at", "created_at"),
    )


class PostVersion(SQLModel, table=True):
    """
    Immutable snapshot of a post's editable fields.

    Created only as a side effect of an edit and removed only when the
    owning post is deleted.
    """

    __tablename__ = "post_version"

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: int = Field(
        sa_column=Column(Integer, ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    title: str = Field(max_length=500)
    content: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    excerpt: str = Field(sa_column=Column(Text, nullable=False))
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    version: int = Field(ge=1)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    created_by: int = Field(sa_column=Column(Integer, ForeignKey("user.id"), nullable=False))
    comment: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    __table_args__ = (
        UniqueConstraint("post_id", "version", name="uq_post_version_post_id_version"),
    )


__all__ = ["Post", "PostVersion"]
