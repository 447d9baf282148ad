"""HTTP client for the Wikipedia REST and Action APIs."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter

from curio_feed.config.settings import WikipediaSettings
from curio_feed.wikipedia.errors import (
    DecodeError,
    EmptyResponseError,
    HTTPStatusError,
    InvalidRequestError,
    TransportError,
)
from curio_feed.wikipedia.models import SummaryPayload, parse_page_html, parse_search_titles

logger = logging.getLogger(__name__)

RANDOM_SUMMARY_PATH = "/api/rest_v1/page/random/summary"
SUMMARY_PATH = "/api/rest_v1/page/summary/"
ACTION_API_PATH = "/w/api.php"


class WikipediaClient:
    """Fetch summaries, rendered pages and search results.

    ``session`` is the transport; anything exposing ``requests.Session.get``
    semantics can be injected.
    """

    def __init__(self, settings: WikipediaSettings, session: Optional[requests.Session] = None) -> None:
        self._settings = settings
        self._session = session if session is not None else self._create_session()

    @property
    def settings(self) -> WikipediaSettings:
        return self._settings

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "User-Agent": self._settings.user_agent,
                "Accept": "application/json",
                "Accept-Encoding": "gzip, deflate",
            }
        )
        adapter = HTTPAdapter(pool_connections=4, pool_maxsize=8)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def close(self) -> None:
        self._session.close()

    def fetch_random_summary(self) -> SummaryPayload:
        data = self._get_json(self._settings.base_url + RANDOM_SUMMARY_PATH)
        return SummaryPayload.from_json(data)

    def fetch_summary(self, title: str) -> SummaryPayload:
        if not title or not title.strip():
            raise InvalidRequestError("Cannot fetch a summary for an empty title")
        encoded = quote(title.strip().replace(" ", "_"), safe="")
        data = self._get_json(self._settings.base_url + SUMMARY_PATH + encoded)
        return SummaryPayload.from_json(data)

    def fetch_page_html(self, title: str) -> Optional[str]:
        """Return the rendered body HTML for ``title``, or ``None`` if the API omits it."""

        if not title or not title.strip():
            raise InvalidRequestError("Cannot fetch page HTML for an empty title")
        params = {
            "action": "parse",
            "page": title.strip(),
            "prop": "text",
            "format": "json",
            "redirects": "1",
        }
        data = self._get_json(self._settings.base_url + ACTION_API_PATH, params=params)
        return parse_page_html(data)

    def search(self, term: str, *, limit: int, offset: int) -> List[str]:
        """Run a main-namespace full-text search and return result titles in API order."""

        params = {
            "action": "query",
            "list": "search",
            "srsearch": term,
            "srnamespace": "0",
            "srlimit": str(limit),
            "sroffset": str(offset),
            "format": "json",
        }
        data = self._get_json(self._settings.base_url + ACTION_API_PATH, params=params)
        return parse_search_titles(data)

    def _get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Any:
        logger.debug("GET %s params=%s", url, params)
        try:
            response = self._session.get(url, params=params, timeout=self._settings.request_timeout)
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema) as exc:
            raise InvalidRequestError(f"Invalid Wikipedia URL {url}: {exc}") from exc
        except requests.RequestException as exc:
            raise TransportError(exc) from exc

        if not 200 <= response.status_code < 300:
            raise HTTPStatusError(response.status_code, url)
        if not response.content:
            raise EmptyResponseError(url)

        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"response from {url} was not JSON: {exc}") from exc


__all__ = ["WikipediaClient"]
