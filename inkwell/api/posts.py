"""
Blog post endpoints.

Readers see published posts only; admins (superusers) see drafts and
scheduled posts too and are the only ones allowed to write.
"""
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel import Session

from inkwell.api import deps
from inkwell.db import get_session
from inkwell.models.user import User
from inkwell.schemas import CounterOut, PostCreate, PostOut, PostSummaryOut, PostUpdate
from inkwell.services import analytics, lifecycle

router = APIRouter()


@router.get("", response_model=List[PostSummaryOut])
def list_posts(
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(deps.get_current_user_optional),
    published: Optional[bool] = Query(default=None, description="Admins only; readers always get published posts"),
    search: Optional[str] = Query(default=None, max_length=200),
    tag: Optional[str] = Query(default=None, max_length=100),
) -> Any:
    if not deps.is_admin(current_user):
        published = True
    posts = lifecycle.list_posts(session, published=published, search=search, tag=tag)
    return [PostSummaryOut.from_post(p) for p in posts]


@router.get("/by-slug/{slug}", response_model=PostOut)
def get_post_by_slug(
    slug: str,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(deps.get_current_user_optional),
) -> Any:
    post = lifecycle.get_post_by_slug(session, slug, include_drafts=deps.is_admin(current_user))
    return PostOut.from_post(post)


@router.get("/{post_id}", response_model=PostOut)
def get_post(
    post_id: int,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(deps.get_current_user_optional),
) -> Any:
    post = lifecycle.get_post(session, post_id, include_drafts=deps.is_admin(current_user))
    return PostOut.from_post(post)


@router.post("", response_model=PostOut, status_code=status.HTTP_201_CREATED)
def create_post(
    post_in: PostCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(deps.get_current_superuser),
) -> Any:
    post = lifecycle.create_draft(session, post_in.model_dump(exclude_unset=True))
    return PostOut.from_post(post)


@router.patch("/{post_id}", response_model=PostOut)
def update_post(
    post_id: int,
    post_in: PostUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(deps.get_current_superuser),
) -> Any:
    """
    Edit a post. Every edit records a version and returns the post to draft;
    send a future publish_at to keep it scheduled.
    """
    data = post_in.model_dump(exclude_unset=True)
    comment = data.pop("comment", None)
    post = lifecycle.edit(session, post_id, data, actor_id=current_user.id, comment=comment)
    return PostOut.from_post(post)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    post_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(deps.get_current_superuser),
) -> Response:
    lifecycle.delete(session, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/publish", response_model=PostOut)
def publish_post(
    post_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(deps.get_current_superuser),
) -> Any:
    return PostOut.from_post(lifecycle.publish_now(session, post_id))


@router.post("/{post_id}/unpublish", response_model=PostOut)
def unpublish_post(
    post_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(deps.get_current_superuser),
) -> Any:
    return PostOut.from_post(lifecycle.unpublish(session, post_id))


# ============== READER COUNTERS ==============


@router.post("/{post_id}/view", response_model=CounterOut)
def record_view(post_id: int, session: Session = Depends(get_session)) -> Any:
    """Count a read. Storage failures are logged, not returned."""
    return CounterOut(recorded=analytics.record_view(session, post_id))


@router.post("/{post_id}/share", response_model=CounterOut)
def record_share(post_id: int, session: Session = Depends(get_session)) -> Any:
    return CounterOut(recorded=analytics.record_share(session, post_id))
