"""
User Model

Accounts that can sign in. Only superusers may write posts; everyone else
(including anonymous visitors) is a reader. Versions record which user made
each edit.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from inkwell.core.typing import utc_now


class User(SQLModel, table=True):
    __tablename__ = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=320)
    hashed_password: str  # argon2
    display_name: Optional[str] = Field(default=None, max_length=200)
    is_active: bool = Field(default=True)  # Inactive users cannot sign in
    is_superuser: bool = Field(default=False)  # Admins may create, edit and publish posts
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


__all__ = ["User"]
