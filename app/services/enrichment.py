"""Attach watch-provider availability to titles."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from ..config import Settings
from ..models import ProviderAvailability, Title
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)

SUBSCRIPTION_CATEGORY = "flatrate"
AD_SUPPORTED_CATEGORY = "ads"


class ProviderEnricher:
    """Looks up per-region availability with a bounded window of lookups."""

    def __init__(self, settings: Settings, tmdb_client: TMDBClient):
        self._settings = settings
        self._tmdb = tmdb_client

    @property
    def window_size(self) -> int:
        return max(1, int(self._settings.tmdb_provider_concurrency))

    @property
    def categories(self) -> tuple[str, ...]:
        if self._settings.tmdb_include_ads:
            return (SUBSCRIPTION_CATEGORY, AD_SUPPORTED_CATEGORY)
        return (SUBSCRIPTION_CATEGORY,)

    async def enrich_title(self, title: Title, *, force: bool | None = None) -> Title:
        """Return ``title`` with provider names, link and region attached.

        Titles that already carry provider names skip the lookup unless full
        enrichment is configured or ``force`` is set. A failed lookup yields
        empty provider data instead of an error.
        """

        full = self._settings.tmdb_enrich_full_providers if force is None else force
        if title.provider_names and not full:
            availability = ProviderAvailability(
                provider_names=list(title.provider_names),
                provider_link=title.provider_link,
                watch_region=self._settings.tmdb_watch_region,
            )
            return self._apply(title, availability)

        outcome = await self._tmdb.watch_providers(title.media_type, title.id)
        if not outcome.ok:
            logger.warning(
                "Watch provider lookup failed for %s %s: %s",
                title.media_type,
                title.id,
                outcome.error,
            )
            return self._apply(title, ProviderAvailability())

        return self._apply(title, self.select_availability(outcome.unwrap_or({})))

    async def enrich_titles(
        self, titles: Sequence[Title], *, force: bool | None = None
    ) -> list[Title]:
        """Enrich ``titles`` window by window, preserving input order."""

        enriched: list[Title] = []
        size = self.window_size
        for start in range(0, len(titles), size):
            window = titles[start : start + size]
            results = await asyncio.gather(
                *(self.enrich_title(title, force=force) for title in window),
                return_exceptions=True,
            )
            for original, result in zip(window, results):
                if isinstance(result, Exception):
                    logger.warning(
                        "Enrichment crashed for %s %s: %s",
                        original.media_type,
                        original.id,
                        result,
                    )
                    enriched.append(self._apply(original, ProviderAvailability()))
                    continue
                enriched.append(result)
        return enriched

    def select_availability(self, regions: dict[str, Any]) -> ProviderAvailability:
        """Pick the first region of the fallback chain that has data."""

        for region in self._settings.watch_regions:
            data = regions.get(region)
            if not isinstance(data, dict):
                continue
            if region != self._settings.tmdb_watch_region:
                logger.debug("Falling back to watch region %s", region)

            names: list[str] = []
            seen_ids: set[Any] = set()
            for category in self.categories:
                entries = data.get(category)
                if not isinstance(entries, list):
                    continue
                for entry in entries:
                    if not isinstance(entry, dict):
                        continue
                    provider_id = entry.get("provider_id")
                    name = entry.get("provider_name")
                    if not isinstance(provider_id, (int, str)) or not name:
                        continue
                    if provider_id in seen_ids:
                        continue
                    seen_ids.add(provider_id)
                    names.append(str(name))

            link = data.get("link")
            return ProviderAvailability(
                provider_names=names,
                provider_link=link if isinstance(link, str) else None,
                watch_region=region,
            )
        return ProviderAvailability()

    @staticmethod
    def _apply(title: Title, availability: ProviderAvailability) -> Title:
        return title.model_copy(
            update={
                "provider_names": availability.provider_names,
                "provider_link": availability.provider_link,
                "watch_region": availability.watch_region,
            }
        )
