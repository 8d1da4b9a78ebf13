"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest

from app.config import Settings


def test_fallback_regions_are_normalised() -> None:
    """Region lists should be upper-cased, trimmed and de-duplicated."""

    settings = Settings(_env_file=None, TMDB_FALLBACK_REGIONS=" us, br ,US,,")

    assert settings.tmdb_fallback_regions == ("US", "BR")


def test_watch_regions_start_with_configured_region() -> None:
    """The fallback chain never repeats the configured region."""

    settings = Settings(
        _env_file=None, TMDB_WATCH_REGION="br", TMDB_FALLBACK_REGIONS="US,BR,PT"
    )

    assert settings.tmdb_watch_region == "BR"
    assert settings.watch_regions == ("BR", "US", "PT")


def test_default_selected_platforms_accepts_iterables() -> None:
    settings = Settings(
        _env_file=None, DEFAULT_SELECTED_PLATFORMS=["Netflix", " Disney+ ", "Netflix"]
    )

    assert settings.default_selected_platforms == ("Netflix", "Disney+")


def test_defaults_match_documented_values() -> None:
    settings = Settings(_env_file=None)

    assert settings.tmdb_catalog_max_pages == 8
    assert settings.tmdb_provider_concurrency == 12
    assert settings.tmdb_enrich_full_providers is False
    assert settings.default_selected_platforms == ("Netflix", "Prime Video")


def test_provider_concurrency_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, TMDB_PROVIDER_CONCURRENCY=0)


def test_blank_watch_region_is_rejected() -> None:
    with pytest.raises(ValueError, match="TMDB_WATCH_REGION"):
        Settings(_env_file=None, TMDB_WATCH_REGION="  ")
