from __future__ import annotations

from datetime import datetime, timezone

import pytest

from curio_feed.wikipedia.errors import DecodeError
from curio_feed.wikipedia.models import (
    Article,
    Coordinate,
    FeedMode,
    ImageInfo,
    Section,
    SummaryPayload,
    estimated_reading_time,
    parse_page_html,
    parse_search_titles,
    parse_timestamp,
)
from stubs import summary_json


def _article(article_id: str, title: str = "Title", extract: str = "Extract", **kwargs) -> Article:
    return Article(id=article_id, title=title, extract=extract, url="https://example.com", **kwargs)


def test_articles_compare_by_id_only() -> None:
    first = _article("123", title="Test Article", extract="Test extract")
    second = _article("123", title="Different Title", extract="Different extract")

    assert first == second
    assert len({first, second}) == 1
    assert first != _article("124", title="Test Article", extract="Test extract")


def test_estimated_reading_time() -> None:
    assert estimated_reading_time(0) == 1
    assert estimated_reading_time(399) == 1
    assert estimated_reading_time(400) == 2
    assert estimated_reading_time(900, words_per_minute=300) == 3


def test_article_reading_time_counts_extract_and_sections() -> None:
    short = _article("1", extract="This is a short extract with ten words exactly here.")
    long = _article("2", extract="word " * 400)
    with_sections = _article(
        "3",
        extract="word " * 200,
        sections=(Section(title="More", level=2, content="word " * 200),),
    )

    assert short.reading_time_minutes == 1
    assert long.reading_time_minutes == 2
    assert with_sections.word_count == 400
    assert with_sections.reading_time_minutes == 2


def test_section_emptiness() -> None:
    assert Section(title="", level=0, content="").is_empty
    assert Section(title="  ", level=0, content="  \n ").is_empty
    assert not Section(title="Title", level=1, content="").is_empty
    assert not Section(title="", level=0, content="Content").is_empty


def test_section_word_count() -> None:
    section = Section(title="Test Section", level=1, content="This is a test section with exactly ten words here.")

    assert section.word_count == 10


def test_article_content_flags() -> None:
    empty = _article("1", extract="")
    with_sections = _article("3", extract="", sections=(Section(title="Section", level=1, content="Content"),))
    big_image = _article("4", thumbnail=ImageInfo(source="https://img", width=1200, height=900))
    small_image = _article("5", thumbnail=ImageInfo(source="https://img", width=1200, height=300))

    assert not empty.has_content
    assert _article("2", extract="Some extract").has_content
    assert with_sections.has_content
    assert big_image.has_thumbnail and big_image.is_high_res_image
    assert not small_image.is_high_res_image
    assert not empty.has_thumbnail and not empty.is_high_res_image


def test_image_geometry() -> None:
    landscape = ImageInfo(source="https://img", width=800, height=600)
    portrait = ImageInfo(source="https://img", width=600, height=800)
    square = ImageInfo(source="https://img", width=500, height=500)

    assert landscape.is_landscape
    assert not portrait.is_landscape
    assert not square.is_landscape
    assert landscape.aspect_ratio == pytest.approx(800 / 600)
    assert square.aspect_ratio == pytest.approx(1.0)
    assert ImageInfo(source="https://img", width=10, height=0).aspect_ratio == 0.0


def test_summary_prefers_original_image() -> None:
    both = SummaryPayload.from_json(summary_json(pageid=7, thumbnail=True, original=True))
    thumb_only = SummaryPayload.from_json(summary_json(pageid=8, thumbnail=True))
    neither = SummaryPayload.from_json(summary_json(pageid=9, thumbnail=False))

    assert both.id == "7"
    assert both.best_image.source.endswith("full.jpg")
    assert both.best_image.width == 1600
    assert thumb_only.best_image.source.endswith("thumb.jpg")
    assert neither.best_image is None


def test_summary_decoding_errors() -> None:
    missing_urls = summary_json()
    del missing_urls["content_urls"]
    bad_pageid = summary_json()
    bad_pageid["pageid"] = "12"

    with pytest.raises(DecodeError):
        SummaryPayload.from_json(missing_urls)
    with pytest.raises(DecodeError):
        SummaryPayload.from_json(bad_pageid)
    with pytest.raises(DecodeError):
        SummaryPayload.from_json(["not", "an", "object"])


def test_last_modified_parsing() -> None:
    parsed = SummaryPayload.from_json(summary_json(lastmodified="2024-05-01T12:30:00Z"))
    garbage = SummaryPayload.from_json(summary_json(lastmodified="yesterday-ish"))

    assert parsed.last_modified == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    assert garbage.last_modified is None
    assert parse_timestamp(None) is None
    assert parse_timestamp("2024-05-01T12:30:00").tzinfo is not None


def test_feed_mode_search_terms() -> None:
    location = Coordinate(51.5, -0.12)

    assert FeedMode.RANDOM.search_term() is None
    assert FeedMode.RANDOM.max_offset is None
    assert FeedMode.ART.search_term() == "deepcat:Paintings"
    assert FeedMode.SCIENCE.search_term(location) == "deepcat:Science"
    assert FeedMode.NEARBY.search_term() is None
    assert FeedMode.NEARBY.search_term(location, radius_km=5) == "nearcoord:5km,51.500000,-0.120000"
    assert FeedMode.NEARBY.is_location_based
    assert not FeedMode.ART.is_location_based


def test_feed_mode_parse() -> None:
    assert FeedMode.parse("Art") is FeedMode.ART
    assert FeedMode.parse(" nearby ") is FeedMode.NEARBY
    with pytest.raises(ValueError):
        FeedMode.parse("music")


def test_search_and_parse_payloads() -> None:
    search = {"query": {"search": [{"pageid": 1, "title": "Mona Lisa"}, {"pageid": 2}, {"pageid": 3, "title": "Starry Night"}]}}

    assert parse_search_titles(search) == ["Mona Lisa", "Starry Night"]
    assert parse_search_titles({"query": {"search": []}}) == []
    with pytest.raises(DecodeError):
        parse_search_titles({"error": {"code": "badvalue", "info": "offset too large"}})
    with pytest.raises(DecodeError):
        parse_search_titles({"batchcomplete": ""})

    assert parse_page_html({"parse": {"text": {"*": "<p>x</p>"}}}) == "<p>x</p>"
    assert parse_page_html({"parse": {}}) is None
    assert parse_page_html(None) is None
