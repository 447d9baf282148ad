"""Wikipedia article acquisition and content structuring."""

from .client import WikipediaClient
from .discovery import SearchWindow, TitleDiscovery
from .errors import (
    DecodeError,
    EmptyResponseError,
    HTTPStatusError,
    InvalidRequestError,
    NoQualifyingArticles,
    SearchExhausted,
    TransportError,
    WikipediaError,
)
from .models import Article, FeedMode, ImageInfo, Section, estimated_reading_time
from .sections import extract_sections
from .service import ArticleService, build_article

__all__ = [
    "Article",
    "ArticleService",
    "DecodeError",
    "EmptyResponseError",
    "FeedMode",
    "HTTPStatusError",
    "ImageInfo",
    "InvalidRequestError",
    "NoQualifyingArticles",
    "SearchExhausted",
    "SearchWindow",
    "Section",
    "TitleDiscovery",
    "TransportError",
    "WikipediaClient",
    "WikipediaError",
    "build_article",
    "estimated_reading_time",
    "extract_sections",
]
