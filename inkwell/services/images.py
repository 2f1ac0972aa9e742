"""Image store: binary image content addressed by id."""

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from inkwell.core.errors import NotFoundError, StorageError, ValidationError, capture_exception
from inkwell.core.logging_config import get_logger
from inkwell.models.image import Image

logger = get_logger(__name__)

ALLOWED_MIME_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/gif", "image/webp", "image/svg+xml"}
)
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def get_image(session: Session, image_id: int) -> Image:
    image = session.get(Image, image_id)
    if image is None:
        raise NotFoundError("Image", image_id)
    return image


def create_image(session: Session, filename: str, mime_type: str, data: bytes) -> Image:
    """
    Store an image.

    Raises:
        ValidationError: empty or oversized data, unsupported mime type
        StorageError: the row could not be written
    """
    errors = []
    if not filename.strip():
        errors.append({"loc": ["filename"], "msg": "Filename is required", "type": "value_error"})
    if mime_type not in ALLOWED_MIME_TYPES:
        errors.append({"loc": ["mime_type"], "msg": f"Unsupported image type {mime_type}", "type": "value_error"})
    if not data:
        errors.append({"loc": ["data"], "msg": "Image data is empty", "type": "value_error"})
    elif len(data) > MAX_IMAGE_BYTES:
        errors.append({"loc": ["data"], "msg": "Image is too large", "type": "value_error"})
    if errors:
        raise ValidationError("Invalid image", errors=errors)

    image = Image(filename=filename.strip(), mime_type=mime_type, size=len(data), data=data)
    try:
        session.add(image)
        session.commit()
        session.refresh(image)
    except SQLAlchemyError as e:
        session.rollback()
        capture_exception(e, context={"operation": "create image", "filename": filename})
        raise StorageError("create image") from e

    logger.info("Image stored", image_id=image.id, mime_type=mime_type, size=image.size)
    return image


def delete_image(session: Session, image_id: int) -> None:
    """Delete an image. Blocks that still reference it are left as they are."""
    image = get_image(session, image_id)
    try:
        session.delete(image)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        capture_exception(e, context={"operation": "delete image", "image_id": image_id})
        raise StorageError("delete image") from e

    logger.info("Image deleted", image_id=image_id)
