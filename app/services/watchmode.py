"""Direct-link resolution through the Watchmode API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

import httpx

from ..config import Settings
from ..errors import UpstreamFailure
from ..models import DirectLink, MediaType
from ..platforms import normalize_provider_name, source_rank
from ..utils import is_app_scheme, is_http_url
from .outcome import Outcome

logger = logging.getLogger(__name__)

SERVICE_NAME = "watchmode"


@dataclass(slots=True)
class RankedLink:
    """A direct link candidate with the rank of its source category."""

    app_uri: str | None
    web_uri: str
    rank: int

    def to_direct_link(self) -> DirectLink:
        return DirectLink(app_uri=self.app_uri, web_uri=self.web_uri)


class WatchmodeClient:
    """Resolves per-platform deep links for catalog titles."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    @property
    def configured(self) -> bool:
        return bool(self._settings.watchmode_api_key)

    async def get_direct_links(
        self,
        tmdb_id: int,
        media_type: MediaType,
        allowed_platforms: Iterable[str] | None = None,
    ) -> dict[str, DirectLink]:
        """Return the best direct link per normalised platform name.

        Any failure along the way resolves to an empty mapping.
        """

        if not self.configured or not tmdb_id:
            return {}

        allowed = {
            normalize_provider_name(name) for name in allowed_platforms or [] if name
        }

        title_id = await self.find_title_id(tmdb_id, media_type)
        if not title_id.ok:
            logger.warning(
                "Watchmode lookup failed for %s %s: %s", media_type, tmdb_id, title_id.error
            )
            return {}
        resolved_id = title_id.unwrap_or(0)
        if not resolved_id:
            return {}

        sources = await self.fetch_sources(resolved_id)
        if not sources.ok:
            logger.warning(
                "Watchmode sources failed for title %s: %s", resolved_id, sources.error
            )
            return {}

        merged = self.merge_sources(sources.unwrap_or([]), allowed=allowed or None)
        return {platform: link.to_direct_link() for platform, link in merged.items()}

    async def find_title_id(self, tmdb_id: int, media_type: MediaType) -> Outcome[int]:
        """Map a TMDB id onto Watchmode's internal id; ``0`` when unmatched."""

        search_field = "tmdb_tv_id" if media_type == "series" else "tmdb_movie_id"
        payload = await self._get(
            "/search/",
            {"search_field": search_field, "search_value": str(tmdb_id)},
        )
        if not payload.ok:
            return Outcome.failure(payload.error)  # type: ignore[arg-type]
        data = payload.value
        results = data.get("title_results") if isinstance(data, dict) else None
        if not isinstance(results, list) or not results:
            return Outcome.success(0)
        first = results[0]
        try:
            return Outcome.success(int(first.get("id") or 0))
        except (AttributeError, TypeError, ValueError):
            return Outcome.success(0)

    async def fetch_sources(self, title_id: int) -> Outcome[list[dict[str, Any]]]:
        payload = await self._get(
            f"/title/{title_id}/sources/",
            {"regions": self._settings.tmdb_watch_region},
        )
        if not payload.ok:
            return Outcome.failure(payload.error)  # type: ignore[arg-type]
        data = payload.value
        if not isinstance(data, list):
            return Outcome.success([])
        return Outcome.success([entry for entry in data if isinstance(entry, dict)])

    @staticmethod
    def merge_sources(
        sources: Iterable[dict[str, Any]], *, allowed: set[str] | None = None
    ) -> dict[str, RankedLink]:
        """Keep the highest-ranked source per platform; ties keep the first seen."""

        merged: dict[str, RankedLink] = {}
        for source in sources:
            platform = normalize_provider_name(
                source.get("name") or source.get("source_name") or source.get("display_name")
            )
            if not platform:
                continue
            if allowed is not None and platform not in allowed:
                continue
            web_url = source.get("web_url")
            if not is_http_url(web_url):
                continue

            candidate = RankedLink(
                app_uri=_pick_app_url(source),
                web_uri=web_url,
                rank=source_rank(source.get("type")),
            )
            current = merged.get(platform)
            if current is None or candidate.rank > current.rank:
                merged[platform] = candidate
        return merged

    async def _get(self, path: str, params: dict[str, Any]) -> Outcome[Any]:
        query = {"apiKey": self._settings.watchmode_api_key, **params}
        try:
            response = await self._client.get(path, params=query)
            response.raise_for_status()
            return Outcome.success(response.json())
        except httpx.HTTPStatusError as exc:
            return Outcome.failure(
                UpstreamFailure(
                    SERVICE_NAME,
                    f"{path} returned HTTP {exc.response.status_code}",
                    status=exc.response.status_code,
                )
            )
        except httpx.HTTPError as exc:
            return Outcome.failure(UpstreamFailure(SERVICE_NAME, f"{path} failed: {exc}"))
        except ValueError:
            return Outcome.failure(UpstreamFailure(SERVICE_NAME, f"{path} returned invalid JSON"))


def _pick_app_url(source: dict[str, Any]) -> str | None:
    for candidate in (source.get("android_url"), source.get("ios_url")):
        if is_app_scheme(candidate):
            return candidate
    return None
