"""
Content model: block types, post validation and reading time.

A post's content is an ordered list of blocks, each a variant of a tagged
union discriminated by its `type` field:

    text     {content, format?}
    image    {image_id, caption?, alt?, alignment, size}
    cta      {content, button_text, button_url, button_variant, alignment}
    youtube  {video_id, title?, alignment}

Reading time is always derived here from the blocks and never taken from
client input.
"""

import math
import re
from datetime import datetime
from fractions import Fraction
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Union, assert_never

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from inkwell.core.config import settings
from inkwell.core.errors import ValidationError
from inkwell.core.typing import as_utc

TITLE_MAX_LENGTH = 500
META_DESCRIPTION_MAX_LENGTH = 160
CANONICAL_URL_MAX_LENGTH = 2000

# Each image adds ten seconds of reading: 1/6 of a minute's worth of words
IMAGE_READING_FRACTION = Fraction(1, 6)

_TAG_RE = re.compile(r"<[^>]*>")

Alignment = Literal["left", "center", "right"]


# ============== BLOCKS ==============


class TextBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["text"] = "text"
    content: str
    format: Optional[str] = None


class ImageBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["image"] = "image"
    image_id: int = Field(gt=0)
    caption: Optional[str] = None
    alt: Optional[str] = None
    alignment: Alignment = "center"
    size: Literal["small", "medium", "large", "full"] = "full"


class CtaBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["cta"] = "cta"
    content: str
    button_text: str = Field(min_length=1)
    button_url: str = Field(min_length=1)
    button_variant: Literal["default", "outline", "secondary"] = "default"
    alignment: Alignment = "center"


class YoutubeBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["youtube"] = "youtube"
    video_id: str = Field(min_length=1)
    title: Optional[str] = None
    alignment: Alignment = "center"


Block = Annotated[
    Union[TextBlock, ImageBlock, CtaBlock, YoutubeBlock],
    Field(discriminator="type"),
]

_blocks_adapter = TypeAdapter(List[Block])
_url_adapter = TypeAdapter(HttpUrl)


def parse_blocks(raw: Sequence[Union[Dict[str, Any], BaseModel]]) -> List[Block]:
    """Parse stored block dicts back into typed blocks."""
    return _blocks_adapter.validate_python(
        [b.model_dump() if isinstance(b, BaseModel) else b for b in raw]
    )


def dump_blocks(blocks: Sequence[Block]) -> List[Dict[str, Any]]:
    """Serialize blocks for the JSON content column."""
    return [block.model_dump(exclude_none=True) for block in blocks]


# ============== POST FIELDS ==============


class PostFields(BaseModel):
    """Validated editable fields of a post (everything an author can set)."""

    title: str = Field(max_length=TITLE_MAX_LENGTH)
    excerpt: str
    tags: List[str]
    content: List[Block] = Field(default_factory=list)
    slug: Optional[str] = None
    publish_at: Optional[datetime] = None
    meta_title: Optional[str] = Field(default=None, max_length=TITLE_MAX_LENGTH)
    meta_description: Optional[str] = Field(default=None, max_length=META_DESCRIPTION_MAX_LENGTH)
    social_image_id: Optional[int] = Field(default=None, gt=0)
    canonical_url: Optional[str] = Field(default=None, max_length=CANONICAL_URL_MAX_LENGTH)

    @field_validator("title", "excerpt")
    @classmethod
    def _not_blank(cls, value: str, info) -> str:
        value = value.strip()
        if not value:
            raise ValueError(f"{info.field_name.capitalize()} is required")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> List[str]:
        # Editors submit tags either as a list or as "a, b, c"
        if value is None:
            value = []
        if isinstance(value, str):
            value = value.split(",")
        tags: List[str] = []
        for tag in value:
            if not isinstance(tag, str):
                raise ValueError("Tags must be strings")
            tag = tag.strip()
            if tag and tag not in tags:
                tags.append(tag)
        if not tags:
            raise ValueError("At least one tag is required")
        return tags

    @field_validator("slug")
    @classmethod
    def _normalize_slug(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        slug = slugify(value)
        return slug or None

    @field_validator("publish_at")
    @classmethod
    def _publish_at_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @field_validator("canonical_url")
    @classmethod
    def _canonical_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value.strip() == "":
            return None
        value = value.strip()
        try:
            _url_adapter.validate_python(value)
        except PydanticValidationError:
            raise ValueError("Must be a valid URL")
        return value


EDITABLE_FIELDS = (
    "title",
    "excerpt",
    "tags",
    "content",
    "slug",
    "meta_title",
    "meta_description",
    "social_image_id",
    "canonical_url",
)


def _to_validation_error(exc: PydanticValidationError) -> ValidationError:
    errors = [
        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors(include_url=False)
    ]
    fields = sorted({str(err["loc"][0]) for err in errors if err["loc"]})
    return ValidationError(f"Invalid post: {', '.join(fields) or 'body'}", errors=errors)


def validate_post(data: Dict[str, Any]) -> PostFields:
    """
    Validate a full set of post fields.

    Raises:
        ValidationError: with one entry per failing field
    """
    try:
        return PostFields.model_validate(data)
    except PydanticValidationError as e:
        raise _to_validation_error(e) from e


def validate_post_update(data: Dict[str, Any], current: Any) -> PostFields:
    """
    Validate a partial update merged onto the current post.

    Fields the caller left out keep their current values, except
    `publish_at`, which an edit only keeps when it is supplied again.
    """
    merged: Dict[str, Any] = {name: getattr(current, name) for name in EDITABLE_FIELDS}
    merged.update(data)
    if "title" in data and "slug" not in data:
        # A retitled post gets a fresh slug unless one is supplied
        merged["slug"] = None
    merged.setdefault("publish_at", None)
    return validate_post(merged)


# ============== DERIVED VALUES ==============


def strip_markup(markup: str) -> str:
    return _TAG_RE.sub("", markup)


def count_words(markup: str) -> int:
    return len(strip_markup(markup).split())


def compute_reading_time(
    blocks: Sequence[Union[Block, Dict[str, Any]]],
    words_per_minute: Optional[int] = None,
) -> int:
    """
    Estimated reading time in whole minutes, rounded up.

    Text blocks count their words once markup is stripped; every image block
    counts as a sixth of a minute of reading. Other blocks add nothing.
    """
    wpm = words_per_minute or settings.WORDS_PER_MINUTE
    word_equivalents = Fraction(0)

    for block in parse_blocks(blocks):
        match block:
            case TextBlock():
                word_equivalents += count_words(block.content)
            case ImageBlock():
                word_equivalents += IMAGE_READING_FRACTION * wpm
            case CtaBlock() | YoutubeBlock():
                pass
            case _:
                assert_never(block)

    return math.ceil(word_equivalents / wpm)


def slugify(title: str) -> str:
    """
    URL-friendly slug: lowercase, punctuation dropped, whitespace to dashes.

    "Hello, World!  Again" -> "hello-world-again"
    """
    slug = re.sub(r"[^\w\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")
