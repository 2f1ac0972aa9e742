"""Login for admins. Tokens are returned in the body and set as an httpOnly cookie."""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Response
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from inkwell.api import deps
from inkwell.core import security
from inkwell.core.config import settings
from inkwell.core.errors import AuthorizationError
from inkwell.core.jwt import create_access_token
from inkwell.core.logging_config import get_logger
from inkwell.db import get_session
from inkwell.models.user import User

router = APIRouter()
logger = get_logger(__name__)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    display_name: Optional[str] = None
    is_active: bool
    is_superuser: bool


class MessageOut(BaseModel):
    message: str


def authenticate(session: Session, email: str, password: str) -> Optional[User]:
    user = session.exec(select(User).where(User.email == email)).first()
    if user is None or not security.verify_password(password, user.hashed_password):
        return None
    return user


@router.post("/login", response_model=Token)
def login(
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
) -> Any:
    user = authenticate(session, form_data.username, form_data.password)
    if user is None:
        logger.info("Login failed", email=form_data.username)
        raise AuthorizationError("Incorrect email or password", authenticated=False)
    if not user.is_active:
        raise AuthorizationError("Inactive user", authenticated=False)

    token = create_access_token(user.email)
    response.set_cookie(
        key=deps.AUTH_COOKIE,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    logger.info("Login succeeded", user_id=user.id)
    return Token(access_token=token)


@router.post("/logout", response_model=MessageOut)
def logout(response: Response) -> Any:
    response.delete_cookie(key=deps.AUTH_COOKIE, path="/")
    return MessageOut(message="Logged out")


@router.get("/me", response_model=UserOut)
def read_me(current_user: User = Depends(deps.get_current_user)) -> Any:
    return current_user
