from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from inkwell.core.typing import as_utc
from inkwell.models.post import Post, PostVersion
from inkwell.services.lifecycle import post_state

# Request bodies are kept loose; the content model does the real validation
# so that field errors look the same whichever way a post is written.


class PostCreate(BaseModel):
    title: str
    excerpt: str
    tags: Union[List[str], str]
    content: List[Dict[str, Any]] = Field(default_factory=list)
    slug: Optional[str] = None
    publish_at: Optional[datetime] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    social_image_id: Optional[int] = None
    canonical_url: Optional[str] = None


class PostUpdate(BaseModel):
    title: Optional[str] = None
    excerpt: Optional[str] = None
    tags: Optional[Union[List[str], str]] = None
    content: Optional[List[Dict[str, Any]]] = None
    slug: Optional[str] = None
    publish_at: Optional[datetime] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    social_image_id: Optional[int] = None
    canonical_url: Optional[str] = None
    comment: Optional[str] = None  # Stored on the version this edit creates


class PostOut(BaseModel):
    id: int
    title: str
    slug: str
    excerpt: str
    tags: List[str]
    content: List[Dict[str, Any]]
    status: str  # draft, scheduled or published
    is_draft: bool
    publish_at: Optional[datetime] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    social_image_id: Optional[int] = None
    canonical_url: Optional[str] = None
    views: int
    share_count: int
    reading_time_minutes: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_post(cls, post: Post) -> "PostOut":
        return cls(
            id=post.id,
            title=post.title,
            slug=post.slug,
            excerpt=post.excerpt,
            tags=list(post.tags or []),
            content=list(post.content or []),
            status=post_state(post),
            is_draft=post.is_draft,
            publish_at=as_utc(post.publish_at),
            meta_title=post.meta_title,
            meta_description=post.meta_description,
            social_image_id=post.social_image_id,
            canonical_url=post.canonical_url,
            views=post.views,
            share_count=post.share_count,
            reading_time_minutes=post.reading_time_minutes,
            created_at=as_utc(post.created_at),
            updated_at=as_utc(post.updated_at),
        )


class PostSummaryOut(BaseModel):
    """Listing entry; content is left out."""
    id: int
    title: str
    slug: str
    excerpt: str
    tags: List[str]
    status: str
    is_draft: bool
    publish_at: Optional[datetime] = None
    views: int
    reading_time_minutes: int
    created_at: datetime

    @classmethod
    def from_post(cls, post: Post) -> "PostSummaryOut":
        return cls(
            id=post.id,
            title=post.title,
            slug=post.slug,
            excerpt=post.excerpt,
            tags=list(post.tags or []),
            status=post_state(post),
            is_draft=post.is_draft,
            publish_at=as_utc(post.publish_at),
            views=post.views,
            reading_time_minutes=post.reading_time_minutes,
            created_at=as_utc(post.created_at),
        )


class VersionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    version: int
    title: str
    excerpt: str
    tags: List[str]
    content: List[Dict[str, Any]]
    created_at: datetime
    created_by: int
    comment: Optional[str] = None


class CounterOut(BaseModel):
    recorded: bool


class ImageCreate(BaseModel):
    filename: str
    mime_type: str
    data: str  # base64


class ImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    filename: str
    mime_type: str
    size: int
    created_at: datetime
