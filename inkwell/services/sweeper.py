"""
Scheduled publishing.

Promotes every post that is still a draft but whose publish_at has passed.
The ids are selected first (for logging), then flipped in one bulk UPDATE
that re-checks the same predicate, so a post edited in between (edits clear
publish_at unless they reschedule) is left alone. Only is_draft changes.

Running the sweep twice in a row is harmless: published posts and posts
still scheduled for the future never match the predicate.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from inkwell.core.logging_config import get_logger
from inkwell.core.typing import col, utc_now
from inkwell.models.post import Post

logger = get_logger(__name__)


def _due_predicate(now: datetime):
    return and_(
        col(Post.is_draft) == True,  # noqa: E712
        col(Post.publish_at).is_not(None),
        col(Post.publish_at) < now,
    )


def publish_due_posts(session: Session, now: Optional[datetime] = None) -> int:
    """
    Publish all overdue scheduled posts. Returns how many were promoted.

    Raises:
        SQLAlchemyError: on database failure (the transaction is rolled back)
    """
    now = now or utc_now()
    due = _due_predicate(now)

    try:
        due_ids = list(session.exec(select(Post.id).where(due)).all())
        if not due_ids:
            return 0

        result = session.execute(
            update(Post)
            .where(col(Post.id).in_(due_ids))
            .where(due)
            .values(is_draft=False)
            .execution_options(synchronize_session=False)
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    promoted = result.rowcount or 0
    logger.info("Scheduled posts published", count=promoted, post_ids=due_ids)
    return promoted
