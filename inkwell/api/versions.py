"""Version history endpoints (admin only)."""
from typing import Any, List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from inkwell.api import deps
from inkwell.db import get_session
from inkwell.models.user import User
from inkwell.schemas import PostOut, VersionOut
from inkwell.services import lifecycle, versions

router = APIRouter()


@router.get("/posts/{post_id}/versions", response_model=List[VersionOut])
def list_post_versions(
    post_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(deps.get_current_superuser),
) -> Any:
    return versions.list_versions(session, post_id)


@router.get("/versions/{version_id}", response_model=VersionOut)
def get_version(
    version_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(deps.get_current_superuser),
) -> Any:
    return versions.get_version(session, version_id)


@router.post("/posts/{post_id}/versions/{version_id}/restore", response_model=PostOut)
def restore_version(
    post_id: int,
    version_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(deps.get_current_superuser),
) -> Any:
    """Restore an old version. The restore is itself an edit and adds a version."""
    post = lifecycle.restore(session, post_id, version_id, actor_id=current_user.id)
    return PostOut.from_post(post)
