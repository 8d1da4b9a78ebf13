"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_values(value: object, *, name: str) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",")]
    if isinstance(value, Iterable):
        return [str(part).strip() for part in value]
    raise TypeError(f"{name} must be a string or iterable of strings")


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="StreamHub API", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=4000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_base_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_BASE_URL"
    )
    tmdb_language: str = Field(default="pt-BR", alias="TMDB_LANGUAGE")
    tmdb_watch_region: str = Field(default="BR", alias="TMDB_WATCH_REGION")
    tmdb_fallback_regions: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("US", "BR"), alias="TMDB_FALLBACK_REGIONS"
    )
    tmdb_include_ads: bool = Field(default=False, alias="TMDB_INCLUDE_ADS")
    tmdb_catalog_pages: int = Field(
        default=5, alias="TMDB_CATALOG_PAGES", ge=1, le=20
    )
    tmdb_catalog_max_pages: int = Field(
        default=8, alias="TMDB_CATALOG_MAX_PAGES", ge=1, le=20
    )
    tmdb_catalog_max_start_page: int = Field(
        default=50, alias="TMDB_CATALOG_MAX_START_PAGE", ge=1, le=500
    )
    tmdb_catalog_max_items: int = Field(
        default=420, alias="TMDB_CATALOG_MAX_ITEMS", ge=20, le=2_000
    )
    tmdb_provider_concurrency: int = Field(
        default=12, alias="TMDB_PROVIDER_CONCURRENCY", ge=1, le=50
    )
    tmdb_enrich_full_providers: bool = Field(
        default=False, alias="TMDB_ENRICH_FULL_PROVIDERS"
    )
    tmdb_search_pages: int = Field(default=2, alias="TMDB_SEARCH_PAGES", ge=1, le=5)

    watchmode_api_key: str | None = Field(default=None, alias="WATCHMODE_API_KEY")
    watchmode_base_url: HttpUrl = Field(
        default="https://api.watchmode.com/v1", alias="WATCHMODE_BASE_URL"
    )

    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT", gt=0)

    cache_ttl_seconds: int = Field(default=300, alias="CACHE_TTL_SECONDS", ge=0)
    cache_max_entries: int = Field(default=512, alias="CACHE_MAX_ENTRIES", ge=1)

    database_url: str = Field(
        default="sqlite+aiosqlite:///./streamhub.db", alias="DATABASE_URL"
    )

    default_favorite_genre: str = Field(default="Action", alias="DEFAULT_FAVORITE_GENRE")
    default_theme: str = Field(default="dark", alias="DEFAULT_THEME")
    default_selected_platforms: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("Netflix", "Prime Video"), alias="DEFAULT_SELECTED_PLATFORMS"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("tmdb_watch_region", mode="before")
    @classmethod
    def _normalise_region(cls, value: object) -> str:
        region = str(value or "").strip().upper()
        if not region:
            raise ValueError("TMDB_WATCH_REGION must not be empty")
        return region

    @field_validator("tmdb_fallback_regions", mode="before")
    @classmethod
    def _parse_regions(cls, value: object) -> tuple[str, ...]:
        """Normalise the region fallback chain into ordered, unique codes."""

        if value is None:
            return ()
        cleaned: list[str] = []
        for entry in _split_values(value, name="TMDB_FALLBACK_REGIONS"):
            code = entry.upper()
            if code and code not in cleaned:
                cleaned.append(code)
        return tuple(cleaned)

    @field_validator("default_selected_platforms", mode="before")
    @classmethod
    def _parse_platforms(cls, value: object) -> tuple[str, ...]:
        if value is None:
            return ()
        cleaned: list[str] = []
        for entry in _split_values(value, name="DEFAULT_SELECTED_PLATFORMS"):
            if entry and entry not in cleaned:
                cleaned.append(entry)
        return tuple(cleaned)

    @property
    def watch_regions(self) -> tuple[str, ...]:
        """Return the configured region followed by its fallbacks."""

        chain = [self.tmdb_watch_region]
        for region in self.tmdb_fallback_regions:
            if region not in chain:
                chain.append(region)
        return tuple(chain)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
