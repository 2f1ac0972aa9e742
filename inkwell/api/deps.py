"""
Authentication dependencies.

A bearer token travels either in the Authorization header or in the
`access_token` cookie set at login (the header wins when both are present).
Its `sub` claim is the user's email. Readers are anonymous; every write
requires an active superuser.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session, select

from inkwell.core.config import settings
from inkwell.core.context import set_user_id
from inkwell.core.errors import AuthorizationError
from inkwell.core.jwt import decode_subject
from inkwell.db import get_session
from inkwell.models.user import User

AUTH_COOKIE = "access_token"

bearer_token = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)


def request_token(request: Request, header_token: Optional[str] = Depends(bearer_token)) -> Optional[str]:
    return header_token or request.cookies.get(AUTH_COOKIE) or None


def resolve_user(session: Session, token: Optional[str]) -> Optional[User]:
    """The active user a token belongs to, or None for a missing/bad/expired token."""
    if not token:
        return None
    email = decode_subject(token)
    if email is None:
        return None
    user = session.exec(select(User).where(User.email == email)).first()
    if user is None or not user.is_active:
        return None
    set_user_id(user.id)
    return user


def get_current_user_optional(
    token: Optional[str] = Depends(request_token),
    session: Session = Depends(get_session),
) -> Optional[User]:
    """The caller if they sent a valid token; anonymous readers get None."""
    return resolve_user(session, token)


def get_current_user(
    token: Optional[str] = Depends(request_token),
    session: Session = Depends(get_session),
) -> User:
    if not token:
        raise AuthorizationError("Not authenticated", authenticated=False)
    user = resolve_user(session, token)
    if user is None:
        raise AuthorizationError("Could not validate credentials", authenticated=False)
    return user


def get_current_superuser(user: User = Depends(get_current_user)) -> User:
    """Admin gate for every mutating endpoint: 401 without a user, 403 without the flag."""
    if not user.is_superuser:
        raise AuthorizationError("Not enough permissions")
    return user


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.is_superuser
