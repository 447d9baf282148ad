"""Article data model and decoding of Wikipedia API payloads."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from curio_feed.wikipedia.errors import DecodeError

AVERAGE_READING_SPEED = 200  # words per minute
HIGH_RES_MIN_DIMENSION = 800


class Coordinate(NamedTuple):
    latitude: float
    longitude: float


class FeedMode(Enum):
    """Strategies for sourcing the next article.

    Each member is ``(key, title, search template, max pagination offset)``.
    ``RANDOM`` carries neither a template nor an offset bound.
    """

    RANDOM = ("random", "Random", None, None)
    ART = ("art", "Art Mode", "deepcat:Paintings", 10_000)
    SCIENCE = ("science", "Science Mode", "deepcat:Science", 10_000)
    NEARBY = ("nearby", "Nearby", "nearcoord:{radius}km,{latitude},{longitude}", 500)

    def __init__(
        self, key: str, title: str, search_template: Optional[str], max_offset: Optional[int]
    ) -> None:
        self.key = key
        self.title = title
        self.search_template = search_template
        self.max_offset = max_offset

    @property
    def is_search_based(self) -> bool:
        return self.search_template is not None

    @property
    def is_location_based(self) -> bool:
        return self.search_template is not None and "{latitude}" in self.search_template

    def search_term(self, location: Optional[Coordinate] = None, radius_km: int = 10) -> Optional[str]:
        """Return the ``srsearch`` expression for this mode, if it has one."""

        if self.search_template is None:
            return None
        if not self.is_location_based:
            return self.search_template
        if location is None:
            return None
        return self.search_template.format(
            radius=radius_km,
            latitude=f"{location.latitude:.6f}",
            longitude=f"{location.longitude:.6f}",
        )

    @classmethod
    def parse(cls, value: str) -> "FeedMode":
        lowered = value.strip().lower()
        for mode in cls:
            if mode.key == lowered or mode.name.lower() == lowered:
                return mode
        raise ValueError(f"Unknown feed mode {value!r}")


@dataclass(frozen=True)
class ImageInfo:
    source: str
    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        if self.height <= 0:
            return 0.0
        return self.width / self.height

    @property
    def is_landscape(self) -> bool:
        return self.width > self.height


@dataclass(frozen=True)
class Section:
    """A titled block of plain text; level 0 is the untitled lead."""

    title: str
    level: int
    content: str

    @property
    def is_empty(self) -> bool:
        return not self.title.strip() and not self.content.strip()

    @property
    def word_count(self) -> int:
        return len(self.content.split())


def estimated_reading_time(word_count: int, words_per_minute: int = AVERAGE_READING_SPEED) -> int:
    """Whole minutes needed to read ``word_count`` words, never less than one."""

    return max(1, word_count // max(1, words_per_minute))


@dataclass(frozen=True, eq=False)
class Article:
    """A fully assembled article. Identity is the page id alone."""

    id: str
    title: str
    extract: str
    url: str
    sections: Tuple[Section, ...] = ()
    thumbnail: Optional[ImageInfo] = None
    last_modified: Optional[datetime] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Article):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def has_thumbnail(self) -> bool:
        return self.thumbnail is not None

    @property
    def has_content(self) -> bool:
        return bool(self.extract) or any(not section.is_empty for section in self.sections)

    @property
    def is_high_res_image(self) -> bool:
        if self.thumbnail is None:
            return False
        return (
            self.thumbnail.width >= HIGH_RES_MIN_DIMENSION
            and self.thumbnail.height >= HIGH_RES_MIN_DIMENSION
        )

    @property
    def word_count(self) -> int:
        return len(self.extract.split()) + sum(section.word_count for section in self.sections)

    @property
    def reading_time_minutes(self) -> int:
        return estimated_reading_time(self.word_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "extract": self.extract,
            "url": self.url,
            "thumbnail": (
                {
                    "source": self.thumbnail.source,
                    "width": self.thumbnail.width,
                    "height": self.thumbnail.height,
                }
                if self.thumbnail
                else None
            ),
            "last_modified": self.last_modified.isoformat() if self.last_modified else None,
            "reading_time_minutes": self.reading_time_minutes,
            "sections": [
                {"title": section.title, "level": section.level, "content": section.content}
                for section in self.sections
            ],
        }


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 ``lastmodified`` value; anything unusable yields ``None``."""

    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _require(data: Dict[str, Any], key: str, kind: type, context: str) -> Any:
    value = data.get(key)
    if not isinstance(value, kind) or isinstance(value, bool):
        raise DecodeError(f"{context}: missing or invalid '{key}'")
    return value


def _parse_image(value: Any) -> Optional[ImageInfo]:
    if not isinstance(value, dict):
        return None
    source = value.get("source")
    if not isinstance(source, str) or not source:
        return None
    try:
        return ImageInfo(source=source, width=int(value.get("width") or 0), height=int(value.get("height") or 0))
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class SummaryPayload:
    """Decoded body of the REST ``page/summary`` endpoints."""

    pageid: int
    title: str
    extract: str
    page_url: str
    thumbnail: Optional[ImageInfo] = None
    original_image: Optional[ImageInfo] = None
    last_modified: Optional[datetime] = field(default=None)

    @property
    def id(self) -> str:
        return str(self.pageid)

    @property
    def best_image(self) -> Optional[ImageInfo]:
        """The full-resolution image when offered, otherwise the thumbnail."""

        return self.original_image or self.thumbnail

    @classmethod
    def from_json(cls, data: Any) -> "SummaryPayload":
        if not isinstance(data, dict):
            raise DecodeError("summary: expected a JSON object")
        pageid = _require(data, "pageid", int, "summary")
        title = _require(data, "title", str, "summary")
        extract = data.get("extract") or ""
        if not isinstance(extract, str):
            raise DecodeError("summary: invalid 'extract'")

        urls = data.get("content_urls")
        mobile = urls.get("mobile") if isinstance(urls, dict) else None
        page_url = mobile.get("page") if isinstance(mobile, dict) else None
        if not isinstance(page_url, str) or not page_url:
            raise DecodeError("summary: missing 'content_urls.mobile.page'")

        return cls(
            pageid=pageid,
            title=title,
            extract=extract,
            page_url=page_url,
            thumbnail=_parse_image(data.get("thumbnail")),
            original_image=_parse_image(data.get("originalimage")),
            last_modified=parse_timestamp(data.get("lastmodified")),
        )


def parse_search_titles(data: Any) -> List[str]:
    """Extract result titles from an ``action=query&list=search`` response."""

    if not isinstance(data, dict):
        raise DecodeError("search: expected a JSON object")
    if "error" in data:
        error = data["error"] if isinstance(data["error"], dict) else {}
        raise DecodeError(f"search: API error {error.get('code', 'unknown')}: {error.get('info', '')}".rstrip(": "))
    query = data.get("query")
    results = query.get("search") if isinstance(query, dict) else None
    if not isinstance(results, list):
        raise DecodeError("search: missing 'query.search'")
    titles: List[str] = []
    for item in results:
        if isinstance(item, dict) and isinstance(item.get("title"), str) and item["title"]:
            titles.append(item["title"])
    return titles


def parse_page_html(data: Any) -> Optional[str]:
    """Return the rendered HTML from an ``action=parse`` response, if present."""

    if not isinstance(data, dict):
        return None
    parsed = data.get("parse")
    text = parsed.get("text") if isinstance(parsed, dict) else None
    html = text.get("*") if isinstance(text, dict) else None
    return html if isinstance(html, str) else None


__all__ = [
    "AVERAGE_READING_SPEED",
    "Article",
    "Coordinate",
    "FeedMode",
    "ImageInfo",
    "Section",
    "SummaryPayload",
    "estimated_reading_time",
    "parse_page_html",
    "parse_search_titles",
    "parse_timestamp",
]
