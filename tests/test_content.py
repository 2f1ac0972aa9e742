"""
Tests for the content model: block parsing, post validation, reading time
and slugs.
"""

import pytest
from datetime import datetime, timedelta, timezone

from inkwell.core.errors import ValidationError
from inkwell.services.content import (
    CtaBlock,
    ImageBlock,
    TextBlock,
    YoutubeBlock,
    compute_reading_time,
    count_words,
    dump_blocks,
    parse_blocks,
    slugify,
    validate_post,
    validate_post_update,
)

from conftest import image_block, post_data, text_block


class TestReadingTime:
    """compute_reading_time rounds word equivalents up to whole minutes."""

    def test_no_blocks_is_zero(self):
        assert compute_reading_time([]) == 0

    def test_exactly_one_minute_of_words(self):
        assert compute_reading_time([text_block(200)]) == 1

    def test_one_word_over_rounds_up(self):
        assert compute_reading_time([text_block(201)]) == 2

    def test_250_words(self):
        assert compute_reading_time([text_block(250)]) == 2

    def test_250_words_with_one_image(self):
        assert compute_reading_time([text_block(250), image_block()]) == 2

    def test_250_words_with_two_images(self):
        assert compute_reading_time([text_block(250), image_block(1), image_block(2)]) == 2

    def test_six_images_are_one_minute(self):
        assert compute_reading_time([image_block(i) for i in range(1, 7)]) == 1

    def test_seven_images_round_up(self):
        assert compute_reading_time([image_block(i) for i in range(1, 8)]) == 2

    def test_blank_text_counts_nothing(self):
        blocks = [{"type": "text", "content": "<p>   </p>"}, {"type": "text", "content": ""}]
        assert compute_reading_time(blocks) == 0

    def test_markup_is_stripped_before_counting(self):
        block = {"type": "text", "content": '<p class="lead"><strong>one</strong> two <em>three</em></p>'}
        assert count_words(block["content"]) == 3

    def test_cta_and_youtube_add_nothing(self):
        blocks = [
            text_block(200),
            {"type": "cta", "content": "<p>" + "word " * 500 + "</p>", "button_text": "Go", "button_url": "/go"},
            {"type": "youtube", "video_id": "dQw4w9WgXcQ"},
        ]
        assert compute_reading_time(blocks) == 1

    def test_custom_words_per_minute(self):
        assert compute_reading_time([text_block(100)], words_per_minute=100) == 1
        assert compute_reading_time([text_block(101)], words_per_minute=100) == 2

    def test_accepts_typed_blocks(self):
        blocks = [TextBlock(content="one two three"), ImageBlock(image_id=3)]
        assert compute_reading_time(blocks) == 1


class TestBlocks:
    def test_parse_dispatches_on_type(self):
        blocks = parse_blocks([
            {"type": "text", "content": "hi"},
            {"type": "image", "image_id": 4},
            {"type": "cta", "content": "Join", "button_text": "Sign up", "button_url": "/signup"},
            {"type": "youtube", "video_id": "abc"},
        ])
        assert [type(b) for b in blocks] == [TextBlock, ImageBlock, CtaBlock, YoutubeBlock]

    def test_defaults_are_filled(self):
        image, cta = parse_blocks([
            {"type": "image", "image_id": 4},
            {"type": "cta", "content": "Join", "button_text": "Sign up", "button_url": "/signup"},
        ])
        assert image.alignment == "center"
        assert image.size == "full"
        assert cta.button_variant == "default"

    def test_dump_drops_unset_optionals(self):
        dumped = dump_blocks(parse_blocks([{"type": "text", "content": "hi"}]))
        assert dumped == [{"type": "text", "content": "hi"}]

    def test_order_is_preserved(self):
        raw = [{"type": "text", "content": str(i)} for i in range(5)]
        assert [b.content for b in parse_blocks(raw)] == ["0", "1", "2", "3", "4"]


class TestValidatePost:
    def test_valid_post(self):
        fields = validate_post(post_data(tags="python, web , python"))
        assert fields.title == "Hello World"
        assert fields.tags == ["python", "web"]

    @pytest.mark.parametrize("field", ["title", "excerpt"])
    def test_blank_required_text(self, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_post(post_data(**{field: "   "}))
        assert exc_info.value.status_code == 400
        assert exc_info.value.errors[0]["loc"] == [field]

    def test_missing_title(self):
        data = post_data()
        del data["title"]
        with pytest.raises(ValidationError) as exc_info:
            validate_post(data)
        assert "title" in exc_info.value.message

    def test_tags_required(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_post(post_data(tags=[" ", ""]))
        assert exc_info.value.errors[0]["loc"] == ["tags"]

    def test_image_block_needs_positive_id(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_post(post_data(content=[{"type": "image", "image_id": 0}]))
        assert exc_info.value.errors[0]["loc"][0] == "content"

    def test_unknown_block_type(self):
        with pytest.raises(ValidationError):
            validate_post(post_data(content=[{"type": "poll", "question": "?"}]))

    def test_unknown_block_field(self):
        with pytest.raises(ValidationError):
            validate_post(post_data(content=[{"type": "text", "content": "x", "colour": "red"}]))

    def test_canonical_url(self):
        assert validate_post(post_data(canonical_url="")).canonical_url is None
        assert validate_post(post_data(canonical_url="https://example.com/a")).canonical_url == "https://example.com/a"
        with pytest.raises(ValidationError) as exc_info:
            validate_post(post_data(canonical_url="not a url"))
        assert exc_info.value.errors[0]["loc"] == ["canonical_url"]

    def test_meta_description_limit(self):
        validate_post(post_data(meta_description="x" * 160))
        with pytest.raises(ValidationError):
            validate_post(post_data(meta_description="x" * 161))

    @pytest.mark.parametrize("field, limit", [
        ("title", 500),
        ("meta_title", 500),
    ])
    def test_title_length_limits(self, field, limit):
        validate_post(post_data(**{field: "x" * limit}))
        with pytest.raises(ValidationError) as exc_info:
            validate_post(post_data(**{field: "x" * (limit + 1)}))
        assert exc_info.value.errors[0]["loc"] == [field]

    def test_canonical_url_length_limit(self):
        prefix = "https://example.com/"
        validate_post(post_data(canonical_url=prefix + "a" * (2000 - len(prefix))))
        with pytest.raises(ValidationError) as exc_info:
            validate_post(post_data(canonical_url=prefix + "a" * (2001 - len(prefix))))
        assert exc_info.value.errors[0]["loc"] == ["canonical_url"]

    def test_multiple_errors_reported_together(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_post(post_data(title="", tags=[]))
        locs = {tuple(err["loc"]) for err in exc_info.value.errors}
        assert {("title",), ("tags",)} <= locs

    def test_naive_publish_at_is_utc(self):
        fields = validate_post(post_data(publish_at=datetime(2030, 1, 1, 12, 0)))
        assert fields.publish_at == datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_aware_publish_at_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        fields = validate_post(post_data(publish_at=datetime(2030, 1, 1, 12, 0, tzinfo=plus_two)))
        assert fields.publish_at == datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)


class TestValidatePostUpdate:
    class _Current:
        title = "Old title"
        excerpt = "Old excerpt"
        tags = ["old"]
        content = [{"type": "text", "content": "old body"}]
        slug = "old-title"
        meta_title = None
        meta_description = None
        social_image_id = None
        canonical_url = None

    def test_partial_update_keeps_other_fields(self):
        fields = validate_post_update({"excerpt": "New excerpt"}, self._Current())
        assert fields.title == "Old title"
        assert fields.excerpt == "New excerpt"
        assert fields.slug == "old-title"

    def test_retitle_drops_slug(self):
        fields = validate_post_update({"title": "New title"}, self._Current())
        assert fields.slug is None

    def test_publish_at_not_carried_over(self):
        fields = validate_post_update({}, self._Current())
        assert fields.publish_at is None


class TestSlugify:
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Hello World", "hello-world"),
            ("Hello, World!  Again", "hello-world-again"),
            ("  --Leading and trailing--  ", "leading-and-trailing"),
            ("Python 3.12: what's new?", "python-312-whats-new"),
            ("!!!", ""),
        ],
    )
    def test_slugify(self, title, expected):
        assert slugify(title) == expected
