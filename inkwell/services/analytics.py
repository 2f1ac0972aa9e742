"""
Reader counters for posts.

Counters are bumped with a single `UPDATE post SET views = views + 1`
statement so concurrent readers never lose an increment. Callers on the
reader path use `record_view` / `record_share`, which report storage
failures without raising them.
"""

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from inkwell.core.errors import ErrorHandler, NotFoundError
from inkwell.core.logging_config import get_logger
from inkwell.core.typing import col
from inkwell.models.post import Post

logger = get_logger(__name__)

COUNTERS = {
    "views": Post.views,
    "share_count": Post.share_count,
}


def _increment(session: Session, post_id: int, counter: str) -> None:
    column = COUNTERS[counter]
    try:
        result = session.execute(
            update(Post)
            .where(col(Post.id) == post_id)
            .values({counter: column + 1})
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    if not result.rowcount:
        raise NotFoundError("Post", post_id)


def increment_views(session: Session, post_id: int) -> None:
    _increment(session, post_id, "views")


def increment_share_count(session: Session, post_id: int) -> None:
    _increment(session, post_id, "share_count")


def _record(session: Session, post_id: int, counter: str) -> bool:
    """
    Best-effort increment. Returns False if the counter could not be stored.

    NotFoundError still propagates so the caller can answer 404.
    """
    with ErrorHandler(
        f"increment_{counter}",
        context={"post_id": post_id},
        passthrough=(NotFoundError,),
    ) as handler:
        _increment(session, post_id, counter)
    return not handler.failed


def record_view(session: Session, post_id: int) -> bool:
    return _record(session, post_id, "views")


def record_share(session: Session, post_id: int) -> bool:
    return _record(session, post_id, "share_count")
