import base64
import binascii
from typing import Any

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from inkwell.api import deps
from inkwell.core.errors import ValidationError
from inkwell.db import get_session
from inkwell.models.user import User
from inkwell.schemas import ImageCreate, ImageOut
from inkwell.services import images

router = APIRouter()


@router.get("/{image_id}")
def get_image(image_id: int, session: Session = Depends(get_session)) -> Response:
    """Raw image bytes."""
    image = images.get_image(session, image_id)
    return Response(
        content=image.data,
        media_type=image.mime_type,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )


@router.post("", response_model=ImageOut, status_code=status.HTTP_201_CREATED)
def upload_image(
    image_in: ImageCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(deps.get_current_superuser),
) -> Any:
    try:
        data = base64.b64decode(image_in.data, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(
            "Invalid image",
            errors=[{"loc": ["data"], "msg": "Must be base64 encoded", "type": "value_error"}],
        )
    return images.create_image(session, image_in.filename, image_in.mime_type, data)


@router.delete("/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_image(
    image_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(deps.get_current_superuser),
) -> Response:
    images.delete_image(session, image_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
