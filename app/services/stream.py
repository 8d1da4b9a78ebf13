"""High level orchestration of the catalog, enrichment and mapping pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from ..config import Settings
from ..errors import NotFoundError, ValidationError
from ..models import MediaType, PlatformInfo, Preferences, Title, parse_media_type
from ..platforms import (
    PLATFORM_CATALOG,
    list_platforms,
    map_platforms_to_title,
    normalize_provider_name,
    provider_ids_for,
    resolve_platform,
)
from ..utils import split_csv
from .catalog import CatalogAggregator, CatalogMode, PagingWindow
from .enrichment import ProviderEnricher
from .recommendations import get_recommendations
from .users import UserService
from .watchmode import WatchmodeClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PlatformCatalog:
    platform: str
    window: PagingWindow
    mode: CatalogMode
    titles: list[Title]


@dataclass(slots=True)
class NewReleases:
    platforms: list[str]
    window: PagingWindow
    titles: list[Title]


@dataclass(slots=True)
class Recommendations:
    preferences: Preferences
    titles: list[Title]


class StreamService:
    """Coordinates aggregation, enrichment, direct links and scoring per request."""

    def __init__(
        self,
        settings: Settings,
        aggregator: CatalogAggregator,
        enricher: ProviderEnricher,
        watchmode: WatchmodeClient,
        users: UserService,
    ):
        self._settings = settings
        self._aggregator = aggregator
        self._enricher = enricher
        self._watchmode = watchmode
        self._users = users

    @property
    def users(self) -> UserService:
        return self._users

    def platforms(self) -> list[PlatformInfo]:
        return list_platforms()

    async def trending(self) -> list[Title]:
        titles = await self._aggregator.trending()
        return await self._enrich_and_map(titles)

    async def most_watched(self) -> list[Title]:
        titles = await self._aggregator.most_watched()
        return await self._enrich_and_map(titles)

    async def platform_catalog(
        self,
        name: str | None,
        *,
        page: object = 1,
        pages: object = 2,
        limit: object = 240,
        mode: str | None = None,
    ) -> PlatformCatalog:
        """Catalog of a single platform; titles are already tagged with it."""

        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Query parameter 'name' with the platform is required")
        platform = normalize_provider_name(cleaned)
        provider_ids = provider_ids_for(platform)
        if not provider_ids:
            raise NotFoundError(f"Platform {platform} is not supported for catalogs")

        catalog_mode: CatalogMode = "new" if (mode or "").strip().lower() == "new" else "popular"
        window = self._aggregator.clamp_paging(page, pages, limit)
        titles = await self._aggregator.catalog_by_providers(
            provider_ids,
            platform,
            pages=window.pages,
            limit=window.limit,
            page=window.page,
            mode=catalog_mode,
        )
        return PlatformCatalog(
            platform=platform,
            window=window,
            mode=catalog_mode,
            titles=[map_platforms_to_title(title) for title in titles],
        )

    async def new_releases(
        self,
        platforms: str | Sequence[str] | None,
        *,
        pages: object = 2,
        limit: object = 240,
    ) -> NewReleases:
        """Latest releases across the requested (or preferred) platforms."""

        requested = split_csv(platforms)
        if not requested:
            preferences = await self._users.get_preferences()
            requested = list(preferences.selected_platforms) or [
                definition.name for definition in PLATFORM_CATALOG
            ]

        supported: list[str] = []
        for name in requested:
            definition = resolve_platform(name)
            if definition is not None and definition.name not in supported:
                supported.append(definition.name)
        if not supported:
            raise NotFoundError("None of the requested platforms is supported")

        window = self._aggregator.clamp_paging(1, pages, limit)
        titles = await self._aggregator.new_releases(
            supported, pages=window.pages, limit=window.limit
        )
        return NewReleases(
            platforms=supported,
            window=window,
            titles=[map_platforms_to_title(title) for title in titles],
        )

    async def search(self, query: str | None) -> list[Title]:
        cleaned = (query or "").strip()
        if not cleaned:
            raise ValidationError("Query parameter 'q' is required for search")
        titles = await self._aggregator.search(cleaned)
        mapped = await self._enrich_and_map(titles)
        await self._users.add_search_history(cleaned)
        return mapped

    async def title(self, title_id: str | int, media_type: str | None = None) -> Title:
        """Fully enriched detail view, including direct links."""

        try:
            numeric_id = int(title_id)
        except (TypeError, ValueError) as exc:
            raise NotFoundError(f"Title {title_id} not found") from exc
        hint: MediaType | None = parse_media_type(media_type)

        found = await self._aggregator.find_title(numeric_id, hint)
        if found is None:
            raise NotFoundError(f"Title {title_id} not found")

        enriched = await self._enricher.enrich_title(found, force=True)
        direct_links = await self._watchmode.get_direct_links(
            enriched.id, enriched.media_type, allowed_platforms=enriched.provider_names
        )
        return map_platforms_to_title(enriched, direct_links)

    async def recommendations(self) -> Recommendations:
        preferences = await self._users.get_preferences()
        titles = await self.trending()
        ranked = get_recommendations(
            titles, preferences.favorite_genre, preferences.selected_platforms
        )
        return Recommendations(preferences=preferences, titles=ranked)

    async def _enrich_and_map(self, titles: list[Title]) -> list[Title]:
        enriched = await self._enricher.enrich_titles(titles)
        return [map_platforms_to_title(title) for title in enriched]
