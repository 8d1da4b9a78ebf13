"""Aggregation of catalog-provider result sets into deduplicated title lists."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Literal, Sequence

from ..config import Settings
from ..models import IdentityKey, MediaType, Title
from ..platforms import PLATFORM_CATALOG, resolve_platform
from ..utils import clamp_int, release_timestamp
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)

CatalogMode = Literal["popular", "new"]

TRENDING_LIMIT = 20
MIN_CATALOG_LIMIT = 20
DEFAULT_PLATFORM_PAGES = 2
DEFAULT_PLATFORM_LIMIT = 240

# (endpoint, media type hint); ``None`` lets each record declare its own type.
AGGREGATE_LISTS: tuple[tuple[str, MediaType | None], ...] = (
    ("/trending/all/day", None),
    ("/trending/all/week", None),
    ("/movie/popular", "movie"),
    ("/tv/popular", "series"),
    ("/movie/top_rated", "movie"),
    ("/tv/top_rated", "series"),
)


@dataclass(frozen=True)
class PagingWindow:
    """Clamped paging inputs for a catalog request."""

    page: int
    pages: int
    limit: int


def dedupe_titles(titles: Iterable[Title]) -> list[Title]:
    """Keep the first occurrence of every identity key, untouched."""

    seen: set[IdentityKey] = set()
    unique: list[Title] = []
    for title in titles:
        if title.key in seen:
            continue
        seen.add(title.key)
        unique.append(title)
    return unique


def merge_titles(titles: Iterable[Title]) -> list[Title]:
    """Collapse duplicates onto the first occurrence, unioning provider names."""

    merged: dict[IdentityKey, Title] = {}
    for title in titles:
        current = merged.get(title.key)
        if current is None:
            merged[title.key] = title.model_copy(
                update={"provider_names": list(title.provider_names)}
            )
            continue
        for name in title.provider_names:
            if name not in current.provider_names:
                current.provider_names.append(name)
    return list(merged.values())


def sort_by_release(titles: Sequence[Title]) -> list[Title]:
    """Newest release first; missing dates sort last, popularity breaks ties."""

    return sorted(
        titles,
        key=lambda title: (release_timestamp(title.release_date), title.popularity),
        reverse=True,
    )


class CatalogAggregator:
    """Fans out catalog queries concurrently and merges their results."""

    def __init__(self, settings: Settings, tmdb_client: TMDBClient):
        self._settings = settings
        self._tmdb = tmdb_client

    @property
    def max_items(self) -> int:
        return self._settings.tmdb_catalog_max_items

    def clamp_paging(
        self,
        page: object = 1,
        pages: object = DEFAULT_PLATFORM_PAGES,
        limit: object = DEFAULT_PLATFORM_LIMIT,
    ) -> PagingWindow:
        return PagingWindow(
            page=clamp_int(
                page, default=1, lower=1, upper=self._settings.tmdb_catalog_max_start_page
            ),
            pages=clamp_int(
                pages,
                default=DEFAULT_PLATFORM_PAGES,
                lower=1,
                upper=self._settings.tmdb_catalog_max_pages,
            ),
            limit=clamp_int(
                limit,
                default=DEFAULT_PLATFORM_LIMIT,
                lower=MIN_CATALOG_LIMIT,
                upper=self.max_items,
            ),
        )

    async def trending(self) -> list[Title]:
        titles = await self._tmdb.fetch_pages("/trending/all/day", pages=1)
        return dedupe_titles(titles)[:TRENDING_LIMIT]

    async def most_watched(self) -> list[Title]:
        """Trending and popular lists plus per-platform discovers, deduplicated."""

        pages = self._settings.tmdb_catalog_pages
        list_fetches = [
            self._tmdb.fetch_pages(endpoint, media_type=media_type, pages=pages)
            for endpoint, media_type in AGGREGATE_LISTS
        ]
        discover_fetches = [
            self._discover_for_platform(
                definition.name, definition.provider_ids, "movie", pages=1
            )
            for definition in PLATFORM_CATALOG
        ]
        results = await asyncio.gather(*list_fetches, *discover_fetches)
        combined = [title for batch in results for title in batch]
        unique = dedupe_titles(combined)
        logger.debug(
            "Aggregated %s titles into %s unique entries", len(combined), len(unique)
        )
        return unique[: self.max_items]

    async def catalog_by_providers(
        self,
        provider_ids: Sequence[int],
        platform_name: str,
        *,
        pages: object = DEFAULT_PLATFORM_PAGES,
        limit: object = DEFAULT_PLATFORM_LIMIT,
        page: object = 1,
        mode: CatalogMode = "popular",
    ) -> list[Title]:
        """Movies and series streaming on a platform by subscription."""

        window = self.clamp_paging(page, pages, limit)
        movies, series = await asyncio.gather(
            self._discover_for_platform(
                platform_name,
                tuple(provider_ids),
                "movie",
                pages=window.pages,
                start_page=window.page,
                mode=mode,
            ),
            self._discover_for_platform(
                platform_name,
                tuple(provider_ids),
                "series",
                pages=window.pages,
                start_page=window.page,
                mode=mode,
            ),
        )
        unique = dedupe_titles([*movies, *series])
        if mode == "new":
            ordered = sort_by_release(unique)
        else:
            ordered = sorted(unique, key=lambda title: title.popularity, reverse=True)
        return ordered[: window.limit]

    async def new_releases(
        self,
        platform_names: Sequence[str],
        *,
        pages: object = DEFAULT_PLATFORM_PAGES,
        limit: object = DEFAULT_PLATFORM_LIMIT,
    ) -> list[Title]:
        """Latest releases across platforms, merged on identity."""

        window = self.clamp_paging(1, pages, limit)
        targets: list[tuple[str, tuple[int, ...]]] = []
        for name in platform_names:
            definition = resolve_platform(name)
            if definition is None:
                logger.info("Skipping unsupported platform %s", name)
                continue
            if all(existing != definition.name for existing, _ in targets):
                targets.append((definition.name, definition.provider_ids))

        batches = await asyncio.gather(
            *(
                self.catalog_by_providers(
                    provider_ids,
                    name,
                    pages=window.pages,
                    limit=window.limit,
                    mode="new",
                )
                for name, provider_ids in targets
            )
        )
        merged = merge_titles(title for batch in batches for title in batch)
        return sort_by_release(merged)[: window.limit]

    async def search(self, query: str) -> list[Title]:
        titles = await self._tmdb.search_multi(
            query, pages=self._settings.tmdb_search_pages
        )
        return dedupe_titles(titles)

    async def find_title(
        self, title_id: int, media_type: MediaType | None = None
    ) -> Title | None:
        return await self._tmdb.find_title(title_id, media_type)

    async def _discover_for_platform(
        self,
        platform_name: str,
        provider_ids: tuple[int, ...],
        media_type: MediaType,
        *,
        pages: int,
        start_page: int = 1,
        mode: CatalogMode = "popular",
    ) -> list[Title]:
        extra: dict[str, str] = {}
        sort_by = "popularity.desc"
        if mode == "new":
            today = date.today().isoformat()
            if media_type == "movie":
                sort_by = "primary_release_date.desc"
                extra["primary_release_date.lte"] = today
            else:
                sort_by = "first_air_date.desc"
                extra["first_air_date.lte"] = today

        titles = await self._tmdb.discover(
            media_type,
            pages=pages,
            start_page=start_page,
            provider_ids=provider_ids,
            sort_by=sort_by,
            extra=extra,
        )
        return [
            title.model_copy(update={"provider_names": [platform_name]}) for title in titles
        ]
