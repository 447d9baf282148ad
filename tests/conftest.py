from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from curio_feed.config.settings import ContentSettings, SearchSettings, WikipediaSettings
from curio_feed.telemetry import metrics


@pytest.fixture(autouse=True)
def _reset_metrics() -> None:
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture()
def wikipedia_settings() -> WikipediaSettings:
    return WikipediaSettings(base_url="https://wiki.test", request_timeout=5, user_agent="CurioTests/1.0")


@pytest.fixture()
def search_settings() -> SearchSettings:
    return SearchSettings(batch_size=20, max_attempts=3, backoff_seconds=1.0, nearby_radius_km=10)


@pytest.fixture()
def content_settings() -> ContentSettings:
    return ContentSettings()
