"""
Version store: immutable snapshots of a post's editable fields.

Version numbers are assigned per post as current max + 1. The unique
(post_id, version) constraint is the compare-and-set: when two edits of the
same post read the same max, the second flush fails with an IntegrityError
and the lifecycle engine retries the whole edit in a fresh transaction.

Snapshots never commit on their own; they ride on the caller's transaction so
that a post update and its snapshot become visible together or not at all.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from inkwell.core.errors import NotFoundError
from inkwell.core.logging_config import get_logger
from inkwell.core.typing import col, utc_now
from inkwell.models.post import Post, PostVersion
from inkwell.models.user import User

logger = get_logger(__name__)


def current_max_version(session: Session, post_id: int) -> int:
    """Highest version number recorded for a post (0 if none)."""
    result = session.exec(
        select(func.max(PostVersion.version)).where(PostVersion.post_id == post_id)
    ).one()
    return result or 0


def snapshot(
    session: Session,
    post: Post,
    actor_id: int,
    comment: Optional[str] = None,
) -> PostVersion:
    """
    Record the post's current editable fields as the next version.

    The version row is flushed (so constraint violations surface here) but
    not committed.

    Raises:
        NotFoundError: if the post has not been persisted or the actor does not exist
        IntegrityError: if a concurrent snapshot took the same version number
    """
    if post.id is None or session.get(Post, post.id) is None:
        raise NotFoundError("Post", post.id)
    if session.get(User, actor_id) is None:
        raise NotFoundError("User", actor_id)

    next_version = current_max_version(session, post.id) + 1
    version = PostVersion(
        post_id=post.id,
        title=post.title,
        content=list(post.content or []),
        excerpt=post.excerpt,
        tags=list(post.tags or []),
        version=next_version,
        created_at=utc_now(),
        created_by=actor_id,
        comment=comment,
    )
    session.add(version)
    session.flush()

    logger.info("Post version recorded", post_id=post.id, version=next_version, actor_id=actor_id)
    return version


def list_versions(session: Session, post_id: int) -> List[PostVersion]:
    """All versions of a post, newest first."""
    if session.get(Post, post_id) is None:
        raise NotFoundError("Post", post_id)

    return list(
        session.exec(
            select(PostVersion)
            .where(PostVersion.post_id == post_id)
            .order_by(col(PostVersion.version).desc())
        ).all()
    )


def get_version(session: Session, version_id: int) -> PostVersion:
    version = session.get(PostVersion, version_id)
    if version is None:
        raise NotFoundError("Version", version_id)
    return version
