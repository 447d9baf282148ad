from __future__ import annotations

from pathlib import Path

import pytest

from curio_feed.config.settings import DEFAULT_SETTINGS_PATH, SettingsError, load_settings


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_bundled_settings_load() -> None:
    settings = load_settings(DEFAULT_SETTINGS_PATH)

    assert settings.wikipedia.base_url == "https://en.wikipedia.org"
    assert settings.search.batch_size == 20
    assert settings.search.max_offsets["nearby"] == 500
    assert settings.content.words_per_minute == 200


def test_values_are_parsed_and_clamped(tmp_path) -> None:
    path = _write(
        tmp_path,
        """
wikipedia:
  base_url: https://de.wikipedia.org/
  request_timeout: 15
search:
  batch_size: 0
  max_attempts: 5
  backoff_seconds: 0.25
  max_offsets:
    ART: "2000"
content:
  include_sections: false
""",
    )

    settings = load_settings(path)

    assert settings.wikipedia.base_url == "https://de.wikipedia.org"
    assert settings.wikipedia.request_timeout == 15
    assert settings.search.batch_size == 1
    assert settings.search.max_attempts == 5
    assert settings.search.backoff_seconds == 0.25
    assert settings.search.max_offsets == {"art": 2000}
    assert settings.content.include_sections is False
    assert settings.content.max_table_rows == 50


def test_empty_file_gives_defaults(tmp_path) -> None:
    settings = load_settings(_write(tmp_path, ""))

    assert settings.search.max_attempts == 3
    assert settings.wikipedia.request_timeout == 60


def test_environment_variable_selects_file(tmp_path, monkeypatch) -> None:
    path = _write(tmp_path, "search:\n  nearby_radius_km: 25\n")
    monkeypatch.setenv("CURIO_SETTINGS", str(path))

    assert load_settings().search.nearby_radius_km == 25


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "search: 12\n",
        "search:\n  max_offsets: [1, 2]\n",
        "search:\n  max_offsets:\n    art: lots\n",
        "search:\n  batch_size: many\n",
        "wikipedia:\n  base_url: ftp://example.org\n",
    ],
)
def test_invalid_settings_raise(tmp_path, text) -> None:
    with pytest.raises(SettingsError):
        load_settings(_write(tmp_path, text))


def test_missing_file(tmp_path) -> None:
    with pytest.raises(SettingsError):
        load_settings(tmp_path / "absent.yaml")
