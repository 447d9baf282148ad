"""Article acquisition: from a feed mode to one fully assembled article."""
from __future__ import annotations

import logging
import threading
import time
from typing import List, Optional, Sequence, Tuple

import requests

from curio_feed.config.settings import AppSettings, ContentSettings
from curio_feed.telemetry import metrics
from curio_feed.wikipedia.client import WikipediaClient
from curio_feed.wikipedia.discovery import TitleDiscovery
from curio_feed.wikipedia.errors import NoQualifyingArticles, SearchExhausted, WikipediaError
from curio_feed.wikipedia.models import Article, FeedMode, Section, SummaryPayload
from curio_feed.wikipedia.sections import extract_sections, is_error_placeholder

logger = logging.getLogger(__name__)


def build_article(summary: SummaryPayload, sections: Sequence[Section] = ()) -> Article:
    """Assemble an ``Article``; without usable sections the extract becomes the only one."""

    if not sections or is_error_placeholder(sections):
        sections = [Section(title="", level=0, content=summary.extract)]
    return Article(
        id=summary.id,
        title=summary.title,
        extract=summary.extract,
        url=summary.page_url,
        sections=tuple(sections),
        thumbnail=summary.best_image,
        last_modified=summary.last_modified,
    )


class ArticleService:
    """Fetch articles for a feed mode, one call at a time per service."""

    def __init__(
        self,
        client: WikipediaClient,
        discovery: TitleDiscovery,
        content: Optional[ContentSettings] = None,
    ) -> None:
        self._client = client
        self._discovery = discovery
        self._content = content or ContentSettings()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: AppSettings, session: Optional[requests.Session] = None) -> "ArticleService":
        client = WikipediaClient(settings.wikipedia, session=session)
        discovery = TitleDiscovery(client, settings.search)
        return cls(client, discovery, settings.content)

    @property
    def discovery(self) -> TitleDiscovery:
        return self._discovery

    def close(self) -> None:
        self._client.close()

    def reset_mode_state(self) -> None:
        """Discard every buffered title; call whenever the active mode changes."""

        self._discovery.reset()
        logger.debug("Cleared title buffers")

    def set_location(self, latitude: float, longitude: float) -> None:
        self._discovery.set_location(latitude, longitude)
        logger.info(
            "Location set for nearby feed",
            extra={"event": "service.location_set", "latitude": latitude, "longitude": longitude},
        )

    def fetch_article(self, mode: FeedMode, include_sections: Optional[bool] = None) -> Article:
        """Return one article for ``mode``.

        Raises a ``WikipediaError`` subclass when no article could be produced.
        Failures while structuring the page body are never raised.
        """

        start_time = time.perf_counter()
        with_sections = self._content.include_sections if include_sections is None else include_sections
        tried = 0
        try:
            if mode is FeedMode.RANDOM:
                summary = self._client.fetch_random_summary()
            else:
                summary, tried = self._next_qualifying_summary(mode)
        except NoQualifyingArticles as exc:
            self._record(mode, exc.tried, start_time, "no_qualifying")
            raise
        except SearchExhausted:
            self._record(mode, 0, start_time, "exhausted")
            raise
        except WikipediaError:
            self._record(mode, tried, start_time, "error")
            raise

        article = build_article(summary, self._load_sections(summary.title) if with_sections else ())
        self._record(mode, tried, start_time, "success")
        logger.info(
            "Fetched %r for %s with %d sections",
            article.title,
            mode.key,
            len(article.sections),
            extra={"event": "service.article_fetched", "mode": mode.key, "article_id": article.id},
        )
        return article

    def fetch_articles(self, mode: FeedMode, count: int, include_sections: Optional[bool] = None) -> List[Article]:
        """Fetch up to ``count`` articles, stopping at the first failure.

        The failure is only raised when not a single article was produced.
        """

        articles: List[Article] = []
        for _ in range(max(0, count)):
            try:
                articles.append(self.fetch_article(mode, include_sections=include_sections))
            except WikipediaError as exc:
                if not articles:
                    raise
                logger.warning(
                    "Stopped after %d of %d articles for %s: %s",
                    len(articles),
                    count,
                    mode.key,
                    exc,
                    extra={"event": "service.batch_truncated", "mode": mode.key},
                )
                break
        return articles

    def _next_qualifying_summary(self, mode: FeedMode) -> Tuple[SummaryPayload, int]:
        with self._lock:
            if self._discovery.pending(mode) == 0:
                self._discovery.refill(mode)

            tried = 0
            while True:
                title = self._discovery.pop(mode)
                if title is None:
                    logger.warning(
                        "Title buffer for %s drained after %d candidates without an image",
                        mode.key,
                        tried,
                        extra={"event": "service.buffer_drained", "mode": mode.key, "tried": tried},
                    )
                    raise NoQualifyingArticles(mode, tried)
                tried += 1

                try:
                    summary = self._client.fetch_summary(title)
                except WikipediaError as exc:
                    logger.info("Skipping %r for %s: %s", title, mode.key, exc)
                    continue

                if summary.best_image is None:
                    logger.debug("Skipping %r for %s: no image", title, mode.key)
                    continue
                return summary, tried

    @staticmethod
    def _record(mode: FeedMode, tried: int, start_time: float, status: str) -> None:
        metrics.record_acquisition(
            mode.key,
            titles_tried=tried,
            duration_seconds=time.perf_counter() - start_time,
            status=status,
        )

    def _load_sections(self, title: str) -> List[Section]:
        try:
            page_html = self._client.fetch_page_html(title)
        except WikipediaError as exc:
            logger.warning(
                "Falling back to summary for %r: %s",
                title,
                exc,
                extra={"event": "service.page_fetch_failed"},
            )
            return []
        if not page_html:
            return []
        return extract_sections(
            page_html,
            max_table_rows=self._content.max_table_rows,
            max_table_columns=self._content.max_table_columns,
        )


__all__ = ["ArticleService", "build_article"]
