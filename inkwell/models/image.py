"""
Image Model

Binary image content addressed by integer id. Image blocks inside a post's
content reference images by id only; deleting an image leaves those
references dangling.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, LargeBinary
from sqlmodel import Field, SQLModel, Column

from inkwell.core.typing import utc_now


class Image(SQLModel, table=True):
    __tablename__ = "image"

    id: Optional[int] = Field(default=None, primary_key=True)
    filename: str = Field(max_length=255)
    mime_type: str = Field(max_length=100)
    size: int = Field(default=0)  # bytes
    data: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


__all__ = ["Image"]
