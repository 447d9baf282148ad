"""Turn rendered article HTML into an ordered list of plain-text sections."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence

from lxml import html as lxml_html
from lxml.html import HtmlElement

from curio_feed.telemetry import metrics
from curio_feed.wikipedia.models import Section

logger = logging.getLogger(__name__)

HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
# Elements whose boundaries separate words even when the markup has no whitespace.
SEPARATING_TAGS = HEADING_TAGS | frozenset(
    {"br", "p", "div", "li", "ul", "ol", "dl", "dt", "dd", "tr", "th", "td", "blockquote", "section", "table"}
)

# Whole subtrees dropped before any text is read.
REMOVED_TAGS = ("img", "figure", "style", "script", "noscript")
REMOVED_CLASSES = (
    "infobox",
    "thumb",
    "toc",
    "mw-editsection",
    "navbox",
    "vertical-navbox",
    "metadata",
    "mw-empty-elt",
    "mw-jump-link",
    "image",
    "mbox",
    "ambox",
    "tmbox",
    "sistersitebox",
    "hatnote",
    "dablink",
    "shortdescription",
    "reference",
    "mw-cite-backlink",
)

# Direct children of the content container that never contribute text.
SKIPPED_TAGS = frozenset({"meta", "style", "link"})
SKIPPED_CLASS_MARKERS = (
    "toc",
    "hatnote",
    "navbox",
    "infobox",
    "jump-link",
    "shortdescription",
    "short-description",
)

CONTAINER_CLASSES = ("mw-parser-output", "content")
DATA_TABLE_CLASS = "wikitable"
TABLE_START = "<table>"
TABLE_END = "</table>"
BULLET = "•"

PARSE_ERROR_SECTION = Section(title="Error", level=0, content="Could not parse article content.")
MISSING_CONTAINER_SECTION = Section(title="Error", level=0, content="Could not find main content area.")


def _class_xpath(token: str) -> str:
    return f"descendant-or-self::*[contains(concat(' ', normalize-space(@class), ' '), ' {token} ')]"


def _tag(element: HtmlElement) -> str:
    # Comments and processing instructions expose a callable ``tag``.
    tag = element.tag
    return tag.lower() if isinstance(tag, str) else ""


def _classes(element: HtmlElement) -> str:
    return (element.get("class") or "").lower()


def _has_class(element: HtmlElement, token: str) -> bool:
    return token in _classes(element).split()


def _text_parts(element: HtmlElement) -> Iterator[str]:
    tag = _tag(element)
    if not tag:
        return
    separated = tag in SEPARATING_TAGS
    if separated:
        yield " "
    if element.text:
        yield element.text
    for child in element:
        yield from _text_parts(child)
        if child.tail:
            yield child.tail
    if separated:
        yield " "


def _flatten(element: HtmlElement) -> str:
    return " ".join("".join(_text_parts(element)).split())


@dataclass(frozen=True)
class Heading:
    title: str
    level: int


class HeadingMatcher(ABC):
    """Recognise one flavour of heading markup."""

    @abstractmethod
    def match(self, element: HtmlElement) -> Optional[Heading]:
        ...


class NativeHeading(HeadingMatcher):
    """A bare ``<h1>``..``<h6>`` element."""

    def match(self, element: HtmlElement) -> Optional[Heading]:
        tag = _tag(element)
        if tag not in HEADING_TAGS:
            return None
        return Heading(title=_flatten(element), level=int(tag[1]))


class WrappedHeading(HeadingMatcher):
    """A styling wrapper such as ``<div class="mw-heading"><h2>..</h2></div>``."""

    def __init__(self, inner: HeadingMatcher) -> None:
        self._inner = inner

    def match(self, element: HtmlElement) -> Optional[Heading]:
        if _tag(element) in HEADING_TAGS:
            return None
        for child in element.iterchildren():
            heading = self._inner.match(child)
            if heading is not None:
                return heading
        return None


HEADING_MATCHERS: Sequence[HeadingMatcher] = (NativeHeading(), WrappedHeading(NativeHeading()))


def match_heading(element: HtmlElement) -> Optional[Heading]:
    for matcher in HEADING_MATCHERS:
        heading = matcher.match(element)
        if heading is not None:
            return heading
    return None


def is_skippable(element: HtmlElement) -> bool:
    tag = _tag(element)
    if not tag or tag in SKIPPED_TAGS:
        return True
    classes = _classes(element)
    return any(marker in classes for marker in SKIPPED_CLASS_MARKERS)


def _list_start(element: HtmlElement) -> int:
    try:
        return int(element.get("start", "1"))
    except ValueError:
        return 1


def format_list(element: HtmlElement, ordered: bool) -> str:
    """One line per item; ordered items keep their position even when a sibling is blank."""

    lines: List[str] = []
    for number, item in enumerate(element.iterchildren("li"), start=_list_start(element)):
        text = _flatten(item)
        if not text:
            continue
        marker = f"{number}." if ordered else BULLET
        lines.append(f"{marker} {text}")
    return "\n".join(lines)


def format_data_table(element: HtmlElement, max_rows: int = 50, max_columns: int = 10) -> str:
    """Render a data table as tab-separated rows between table markers.

    Falls back to flattened text when the table has no usable rows.
    """

    lines: List[str] = []
    for row in element.xpath("./tr | ./thead/tr | ./tbody/tr | ./tfoot/tr"):
        cells = [_flatten(cell) for cell in row.xpath("./th | ./td")][:max_columns]
        if not any(cells):
            continue
        lines.append("\t".join(cells))
        if len(lines) >= max_rows:
            break
    if not lines:
        return _flatten(element)
    return "\n".join([TABLE_START, *lines, TABLE_END])


def format_element(element: HtmlElement, max_table_rows: int = 50, max_table_columns: int = 10) -> str:
    tag = _tag(element)
    if tag == "ul":
        return format_list(element, ordered=False)
    if tag == "ol":
        return format_list(element, ordered=True)
    if tag == "table" and _has_class(element, DATA_TABLE_CLASS):
        return format_data_table(element, max_table_rows, max_table_columns)
    return _flatten(element)


class _SectionBuilder:
    def __init__(self, title: str, level: int) -> None:
        self.title = title
        self.level = level
        self._blocks: List[str] = []

    def append(self, text: str) -> None:
        text = text.strip()
        if text:
            self._blocks.append(text)

    def build(self) -> Section:
        return Section(title=self.title.strip(), level=self.level, content="\n\n".join(self._blocks).strip())


def _strip_noise(document: HtmlElement) -> None:
    queries = [f"descendant-or-self::{tag}" for tag in REMOVED_TAGS]
    queries.extend(_class_xpath(token) for token in REMOVED_CLASSES)
    for query in queries:
        for element in document.xpath(query):
            if element.getparent() is not None:
                element.drop_tree()


def _find_container(document: HtmlElement) -> Optional[HtmlElement]:
    for token in CONTAINER_CLASSES:
        matches = document.xpath(_class_xpath(token))
        if matches:
            return matches[0]
    return document.find(".//body")


def _walk(children: Iterable[HtmlElement], max_table_rows: int, max_table_columns: int) -> List[Section]:
    sections: List[Section] = []
    current = _SectionBuilder(title="", level=0)
    for child in children:
        heading = match_heading(child)
        if heading is not None:
            section = current.build()
            if not section.is_empty:
                sections.append(section)
            current = _SectionBuilder(title=heading.title, level=heading.level)
            continue
        if is_skippable(child):
            continue
        current.append(format_element(child, max_table_rows, max_table_columns))

    section = current.build()
    if not section.is_empty:
        sections.append(section)
    return sections


def extract_sections(html_text: str, *, max_table_rows: int = 50, max_table_columns: int = 10) -> List[Section]:
    """Split article HTML into a lead section followed by one section per heading.

    Never raises: malformed input yields a single placeholder section.
    """

    try:
        document = lxml_html.document_fromstring(html_text)
        _strip_noise(document)
        container = _find_container(document)
        if container is None:
            metrics.record_extraction(section_count=1, status="no_container")
            return [MISSING_CONTAINER_SECTION]
        sections = _walk(container.iterchildren(), max_table_rows, max_table_columns)
    except Exception as exc:
        logger.warning(
            "Failed to parse article HTML: %s",
            exc,
            extra={"event": "sections.parse_failed"},
        )
        metrics.record_extraction(section_count=1, status="error")
        return [PARSE_ERROR_SECTION]

    metrics.record_extraction(section_count=len(sections), status="success" if sections else "empty")
    return sections


def is_error_placeholder(sections: Sequence[Section]) -> bool:
    return len(sections) == 1 and sections[0] in (PARSE_ERROR_SECTION, MISSING_CONTAINER_SECTION)


__all__ = [
    "HEADING_MATCHERS",
    "Heading",
    "HeadingMatcher",
    "MISSING_CONTAINER_SECTION",
    "PARSE_ERROR_SECTION",
    "extract_sections",
    "format_data_table",
    "format_element",
    "is_error_placeholder",
    "is_skippable",
    "match_heading",
]
