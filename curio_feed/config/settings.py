"""Application settings management for Curio."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parent.parent.parent / "config" / "settings.yaml"
ENV_SETTINGS_PATH = "CURIO_SETTINGS"


@dataclass
class WikipediaSettings:
    """Where and how the Wikipedia APIs are reached."""

    base_url: str = "https://en.wikipedia.org"
    request_timeout: int = 60
    user_agent: str = "CurioBot/0.1 (https://github.com/mnk400/curio)"


@dataclass
class SearchSettings:
    """Title discovery tuning for category and nearby feeds."""

    batch_size: int = 20
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    nearby_radius_km: int = 10
    max_offsets: Dict[str, int] = field(default_factory=dict)


@dataclass
class ContentSettings:
    """Options controlling how article bodies are structured."""

    include_sections: bool = True
    words_per_minute: int = 200
    max_table_rows: int = 50
    max_table_columns: int = 10


@dataclass
class AppSettings:
    """Top-level application settings loaded from YAML."""

    wikipedia: WikipediaSettings = field(default_factory=WikipediaSettings)
    search: SearchSettings = field(default_factory=SearchSettings)
    content: ContentSettings = field(default_factory=ContentSettings)


class SettingsError(RuntimeError):
    """Raised when there is an issue loading settings."""


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise SettingsError(f"Settings file not found at {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise SettingsError("Settings file must define a mapping at the root level")
    return data


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    entry = data.get(name) or {}
    if not isinstance(entry, dict):
        raise SettingsError(f"'{name}' must be a mapping of configuration values")
    return entry


def _parse_wikipedia(entry: Dict[str, Any]) -> WikipediaSettings:
    base_url = str(entry.get("base_url", "https://en.wikipedia.org")).rstrip("/")
    if not base_url.startswith(("http://", "https://")):
        raise SettingsError("'wikipedia.base_url' must be an http(s) URL")
    return WikipediaSettings(
        base_url=base_url,
        request_timeout=max(1, int(entry.get("request_timeout", 60))),
        user_agent=str(entry.get("user_agent", WikipediaSettings.user_agent)),
    )


def _parse_search(entry: Dict[str, Any]) -> SearchSettings:
    offsets_raw = entry.get("max_offsets") or {}
    if not isinstance(offsets_raw, dict):
        raise SettingsError("'search.max_offsets' must map feed modes to integers")
    try:
        max_offsets = {str(key).lower(): int(value) for key, value in offsets_raw.items()}
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"Invalid 'search.max_offsets' value: {exc}") from exc

    return SearchSettings(
        batch_size=max(1, int(entry.get("batch_size", 20))),
        max_attempts=max(1, int(entry.get("max_attempts", 3))),
        backoff_seconds=max(0.0, float(entry.get("backoff_seconds", 1.0))),
        nearby_radius_km=max(1, int(entry.get("nearby_radius_km", 10))),
        max_offsets=max_offsets,
    )


def _parse_content(entry: Dict[str, Any]) -> ContentSettings:
    return ContentSettings(
        include_sections=bool(entry.get("include_sections", True)),
        words_per_minute=max(1, int(entry.get("words_per_minute", 200))),
        max_table_rows=max(1, int(entry.get("max_table_rows", 50))),
        max_table_columns=max(1, int(entry.get("max_table_columns", 10))),
    )


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """Load application settings from YAML into ``AppSettings``.

    ``path`` defaults to the value of the ``CURIO_SETTINGS`` environment variable
    and falls back to ``config/settings.yaml`` relative to the project root.
    """

    if path is None:
        env_path = os.environ.get(ENV_SETTINGS_PATH)
        if env_path:
            path = Path(env_path)
        else:
            path = DEFAULT_SETTINGS_PATH

    data = _load_yaml(path)

    try:
        return AppSettings(
            wikipedia=_parse_wikipedia(_section(data, "wikipedia")),
            search=_parse_search(_section(data, "search")),
            content=_parse_content(_section(data, "content")),
        )
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"Invalid settings value: {exc}") from exc


__all__ = [
    "AppSettings",
    "ContentSettings",
    "SearchSettings",
    "SettingsError",
    "WikipediaSettings",
    "load_settings",
]
