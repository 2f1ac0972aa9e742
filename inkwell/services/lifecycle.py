"""
Post lifecycle engine.

States:
    draft      is_draft=True, no publish_at
    scheduled  is_draft=True, publish_at in the future
    published  is_draft=False

Rules:
- every post starts as a draft (or scheduled, if created with a future publish_at)
- every edit snapshots the pre-edit fields, recomputes reading time and sets
  is_draft=True; publish_at survives only if the edit supplies a future one.
  Editing a published post therefore takes it offline until it is published
  again.
- publish_now publishes immediately and clears publish_at, without a snapshot
- restore replays an old version through edit, so history only grows
- delete removes the post together with all of its versions

Every mutating operation runs as one transaction: a failure anywhere rolls
back the post update and its snapshot together. Edits of the same post are
serialized (a per-post lock in this process, plus a row lock on PostgreSQL)
so each one reads the version number its predecessor committed.
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Literal, Optional, TypeVar

from sqlalchemy import delete as sa_delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from inkwell.core.config import settings
from inkwell.core.db_utils import retry_on_conflict
from inkwell.core.errors import InkwellError, NotFoundError, StorageError, capture_exception
from inkwell.core.logging_config import get_logger
from inkwell.core.typing import as_utc, col, utc_now
from inkwell.models.post import Post, PostVersion
from inkwell.services import versions
from inkwell.services.content import (
    PostFields,
    compute_reading_time,
    dump_blocks,
    parse_blocks,
    slugify,
    strip_markup,
    TextBlock,
    validate_post,
    validate_post_update,
)

logger = get_logger(__name__)

T = TypeVar("T")

PostState = Literal["draft", "scheduled", "published"]

SLUG_MAX_LENGTH = 190


def post_state(post: Post, now: Optional[datetime] = None) -> PostState:
    if not post.is_draft:
        return "published"
    publish_at = as_utc(post.publish_at)
    if publish_at is not None and publish_at > (now or utc_now()):
        return "scheduled"
    return "draft"


# ============== HELPERS ==============


def _run_in_transaction(session: Session, operation: str, work: Callable[[], T], **context: Any) -> T:
    """
    Run one unit of work, rolling back on any failure.

    Version-number conflicts are retried; other database errors are captured
    and surfaced as a generic StorageError.
    """
    try:
        return retry_on_conflict(
            work,
            attempts=max(1, settings.VERSION_RETRY_ATTEMPTS),
            on_conflict=session.rollback,
            operation=operation,
        )
    except InkwellError:
        session.rollback()
        raise
    except (IntegrityError, SQLAlchemyError) as e:
        session.rollback()
        capture_exception(e, context={"operation": operation, **context})
        raise StorageError(operation) from e


# Edits of one post snapshot one at a time within this process
_edit_locks: Dict[int, threading.Lock] = {}
_edit_locks_guard = threading.Lock()


@contextmanager
def _edit_lock(post_id: int) -> Iterator[None]:
    with _edit_locks_guard:
        lock = _edit_locks.setdefault(post_id, threading.Lock())
    with lock:
        yield


def _get_post(session: Session, post_id: int, for_update: bool = False) -> Post:
    if for_update:
        # Row lock on PostgreSQL; SQLite ignores FOR UPDATE
        post = session.get(Post, post_id, with_for_update=True, populate_existing=True)
    else:
        post = session.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post", post_id)
    return post


def _unique_slug(session: Session, source: str, exclude_id: Optional[int] = None) -> str:
    base = slugify(source)[:SLUG_MAX_LENGTH].strip("-") or "post"
    candidate = base
    suffix = 2
    while True:
        existing_id = session.exec(select(Post.id).where(Post.slug == candidate)).first()
        if existing_id is None or existing_id == exclude_id:
            return candidate
        candidate = f"{base}-{suffix}"
        suffix += 1


def _future_or_none(publish_at: Optional[datetime]) -> Optional[datetime]:
    if publish_at is not None and publish_at > utc_now():
        return publish_at
    return None


def _apply_fields(session: Session, post: Post, fields: PostFields) -> None:
    post.title = fields.title
    post.excerpt = fields.excerpt
    post.tags = list(fields.tags)
    post.content = dump_blocks(fields.content)
    post.slug = _unique_slug(session, fields.slug or fields.title, exclude_id=post.id)
    post.meta_title = fields.meta_title
    post.meta_description = fields.meta_description
    post.social_image_id = fields.social_image_id
    post.canonical_url = fields.canonical_url
    post.reading_time_minutes = compute_reading_time(fields.content)
    post.updated_at = utc_now()


# ============== TRANSITIONS ==============


def create_draft(session: Session, data: Dict[str, Any]) -> Post:
    """
    Create a new post in the draft state.

    A future `publish_at` creates it already scheduled.

    Raises:
        ValidationError: if the fields are invalid (nothing is written)
    """
    fields = validate_post(data)

    def work() -> Post:
        post = Post(title=fields.title, slug="", excerpt=fields.excerpt)
        _apply_fields(session, post, fields)
        post.is_draft = True
        post.publish_at = _future_or_none(fields.publish_at)
        post.created_at = post.updated_at
        session.add(post)
        session.commit()
        session.refresh(post)
        return post

    post = _run_in_transaction(session, "create post", work)
    logger.info("Post created", post_id=post.id, slug=post.slug, state=post_state(post))
    return post


def edit(
    session: Session,
    post_id: int,
    data: Dict[str, Any],
    actor_id: int,
    comment: Optional[str] = None,
) -> Post:
    """
    Apply an edit: snapshot the old fields, update, force back to draft.

    `data` may be partial; missing fields keep their current values.

    Raises:
        NotFoundError: unknown post or actor
        ValidationError: invalid fields (nothing is written)
        StorageError: the update or snapshot could not be persisted
    """

    def work() -> Post:
        post = _get_post(session, post_id, for_update=True)
        fields = validate_post_update(data, post)
        snapshot = versions.snapshot(session, post, actor_id, comment)

        _apply_fields(session, post, fields)
        post.is_draft = True
        post.publish_at = _future_or_none(fields.publish_at)
        session.add(post)
        session.commit()
        session.refresh(post)

        logger.info(
            "Post edited",
            post_id=post.id,
            version=snapshot.version,
            actor_id=actor_id,
            state=post_state(post),
            reading_time_minutes=post.reading_time_minutes,
        )
        return post

    with _edit_lock(post_id):
        return _run_in_transaction(session, "update post", work, post_id=post_id)


def publish_now(session: Session, post_id: int) -> Post:
    """Publish a draft or scheduled post immediately. Takes no snapshot."""

    def work() -> Post:
        post = _get_post(session, post_id)
        post.is_draft = False
        post.publish_at = None
        post.updated_at = utc_now()
        session.add(post)
        session.commit()
        session.refresh(post)
        return post

    post = _run_in_transaction(session, "publish post", work, post_id=post_id)
    logger.info("Post published", post_id=post_id)
    return post


def unpublish(session: Session, post_id: int) -> Post:
    """Move a post back to drafts without touching its content."""

    def work() -> Post:
        post = _get_post(session, post_id)
        post.is_draft = True
        post.publish_at = None
        post.updated_at = utc_now()
        session.add(post)
        session.commit()
        session.refresh(post)
        return post

    post = _run_in_transaction(session, "unpublish post", work, post_id=post_id)
    logger.info("Post unpublished", post_id=post_id)
    return post


def delete(session: Session, post_id: int) -> None:
    """Delete a post and every version recorded for it."""

    def work() -> int:
        post = _get_post(session, post_id)
        result = session.execute(sa_delete(PostVersion).where(col(PostVersion.post_id) == post_id))
        session.delete(post)
        session.commit()
        return result.rowcount or 0

    removed_versions = _run_in_transaction(session, "delete post", work, post_id=post_id)
    logger.info("Post deleted", post_id=post_id, versions_removed=removed_versions)


def restore(session: Session, post_id: int, version_id: int, actor_id: int) -> Post:
    """
    Bring back the fields stored in an earlier version.

    Implemented as an edit, so the current state is snapshotted first and the
    restored content becomes the newest state; no history is removed.
    """
    version = versions.get_version(session, version_id)
    if version.post_id != post_id:
        raise NotFoundError("Version", version_id)

    data = {
        "title": version.title,
        "excerpt": version.excerpt,
        "tags": list(version.tags),
        "content": list(version.content),
    }
    return edit(
        session,
        post_id,
        data,
        actor_id,
        comment=f"Restored from version {version.version}",
    )


# ============== READS ==============


def get_post(session: Session, post_id: int, include_drafts: bool = False) -> Post:
    post = _get_post(session, post_id)
    if post.is_draft and not include_drafts:
        raise NotFoundError("Post", post_id)
    return post


def get_post_by_slug(session: Session, slug: str, include_drafts: bool = False) -> Post:
    post = session.exec(select(Post).where(Post.slug == slug)).first()
    if post is None or (post.is_draft and not include_drafts):
        raise NotFoundError("Post", slug)
    return post


def _matches_search(post: Post, needle: str) -> bool:
    if needle in post.title.lower() or needle in post.excerpt.lower():
        return True
    for block in parse_blocks(post.content or []):
        if isinstance(block, TextBlock) and needle in strip_markup(block.content).lower():
            return True
    return False


def list_posts(
    session: Session,
    published: Optional[bool] = None,
    search: Optional[str] = None,
    tag: Optional[str] = None,
) -> List[Post]:
    """
    Posts newest first, optionally filtered.

    Args:
        published: True for published only, False for drafts only, None for all
        search: case-insensitive match on title, excerpt and text blocks
        tag: exact tag match
    """
    query = select(Post).order_by(col(Post.created_at).desc(), col(Post.id).desc())
    if published is not None:
        query = query.where(Post.is_draft == (not published))

    posts = list(session.exec(query).all())

    if search and search.strip():
        needle = search.strip().lower()
        posts = [p for p in posts if _matches_search(p, needle)]

    if tag:
        posts = [p for p in posts if tag in (p.tags or [])]

    return posts
