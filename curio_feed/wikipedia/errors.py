"""Errors raised while talking to Wikipedia or assembling articles."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover - typing only
    from curio_feed.wikipedia.models import FeedMode


class WikipediaError(RuntimeError):
    """Base class for every failure surfaced by the acquisition pipeline."""


class InvalidRequestError(WikipediaError):
    """The request target could not be built (empty title, malformed URL)."""

    def __init__(self, message: str = "Invalid Wikipedia URL") -> None:
        super().__init__(message)


class EmptyResponseError(WikipediaError):
    """The API answered with an empty body."""

    def __init__(self, url: Optional[str] = None) -> None:
        message = "No data received from Wikipedia"
        if url:
            message = f"{message} ({url})"
        super().__init__(message)
        self.url = url


class DecodeError(WikipediaError):
    """The response body was not the JSON shape we expected."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Failed to parse response: {detail}")
        self.detail = detail


class TransportError(WikipediaError):
    """Connection, timeout or other transport level failure."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Network error: {cause}")
        self.cause = cause


class HTTPStatusError(WikipediaError):
    """The API answered with a non-2xx status."""

    def __init__(self, status_code: int, url: Optional[str] = None) -> None:
        super().__init__(f"Unexpected HTTP status {status_code} from {url or 'Wikipedia'}")
        self.status_code = status_code
        self.url = url


class SearchExhausted(WikipediaError):
    """Every search attempt for a mode came back empty."""

    def __init__(self, mode: "FeedMode", attempts: int = 0) -> None:
        super().__init__(f"Search returned no titles for {mode.key} after {attempts} attempts")
        self.mode = mode
        self.attempts = attempts


class NoQualifyingArticles(WikipediaError):
    """The title buffer drained without yielding an article that has an image."""

    def __init__(self, mode: "FeedMode", tried: int) -> None:
        super().__init__(f"No article with an image found for {mode.key} after trying {tried} titles")
        self.mode = mode
        self.tried = tried


__all__ = [
    "DecodeError",
    "EmptyResponseError",
    "HTTPStatusError",
    "InvalidRequestError",
    "NoQualifyingArticles",
    "SearchExhausted",
    "TransportError",
    "WikipediaError",
]
