"""Command-line entrypoint that prints freshly fetched articles as JSON lines."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from curio_feed.config.settings import SettingsError, load_settings
from curio_feed.telemetry import configure_logging, configure_metrics_from_env
from curio_feed.wikipedia import ArticleService, FeedMode, WikipediaError, estimated_reading_time

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="curio", description="Fetch Wikipedia articles for a feed mode.")
    parser.add_argument(
        "--mode",
        default=FeedMode.RANDOM.key,
        choices=[mode.key for mode in FeedMode],
        help="feed mode to draw articles from",
    )
    parser.add_argument("--count", type=int, default=1, help="number of articles to fetch")
    parser.add_argument("--latitude", type=float, help="latitude for the nearby feed")
    parser.add_argument("--longitude", type=float, help="longitude for the nearby feed")
    parser.add_argument("--no-sections", action="store_true", help="skip full-page section extraction")
    parser.add_argument("--settings", type=Path, help="path to a settings YAML file")
    parser.add_argument("--log-level", help="override CURIO_LOG_LEVEL")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(level=args.log_level)
    configure_metrics_from_env()

    try:
        settings = load_settings(args.settings)
    except SettingsError as exc:
        logger.error("Could not load settings: %s", exc)
        return 2

    mode = FeedMode.parse(args.mode)
    service = ArticleService.from_settings(settings)
    try:
        if mode.is_location_based:
            if args.latitude is None or args.longitude is None:
                logger.error("--latitude and --longitude are required for the %s feed", mode.key)
                return 2
            service.set_location(args.latitude, args.longitude)

        articles = service.fetch_articles(
            mode,
            args.count,
            include_sections=False if args.no_sections else None,
        )
    except (WikipediaError, ValueError) as exc:
        logger.error("Failed to load articles: %s", exc)
        return 1
    finally:
        service.close()

    for article in articles:
        payload = article.to_dict()
        payload["reading_time_minutes"] = estimated_reading_time(
            article.word_count, settings.content.words_per_minute
        )
        sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
