"""Client for The Movie Database (TMDB) catalog endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import httpx

from ..config import Settings
from ..errors import ConfigurationError, UpstreamFailure
from ..models import MediaType, Title, upstream_media_type
from ..utils import clamp_int
from .outcome import Outcome

logger = logging.getLogger(__name__)

SERVICE_NAME = "tmdb"


class TMDBClient:
    """Thin wrapper around the TMDB HTTP API.

    Core fetches raise :class:`UpstreamFailure`; the watch-provider lookup used
    by enrichment returns an :class:`Outcome` instead.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    @property
    def configured(self) -> bool:
        return bool(self._settings.tmdb_api_key)

    def _params(self, extra: Mapping[str, Any] | None = None) -> dict[str, Any]:
        if not self._settings.tmdb_api_key:
            raise ConfigurationError("TMDB_API_KEY is not configured")
        params: dict[str, Any] = {
            "api_key": self._settings.tmdb_api_key,
            "language": self._settings.tmdb_language,
        }
        if extra:
            params.update({key: value for key, value in extra.items() if value is not None})
        return params

    async def get_json(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """GET ``path`` and return the decoded JSON object."""

        query = self._params(params)
        try:
            response = await self._client.get(path, params=query)
        except httpx.HTTPError as exc:
            raise UpstreamFailure(SERVICE_NAME, f"request to {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise UpstreamFailure(
                SERVICE_NAME,
                f"{path} returned HTTP {response.status_code}",
                status=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFailure(SERVICE_NAME, f"{path} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise UpstreamFailure(SERVICE_NAME, f"{path} returned an unexpected payload")
        return payload

    async def fetch_pages(
        self,
        endpoint: str,
        *,
        media_type: str | None = None,
        pages: int = 1,
        params: Mapping[str, Any] | None = None,
        start_page: int = 1,
    ) -> list[Title]:
        """Fetch ``pages`` consecutive result pages and normalise every record.

        ``pages`` is clamped to ``[1, TMDB_CATALOG_MAX_PAGES]`` and
        ``start_page`` to ``[1, TMDB_CATALOG_MAX_START_PAGE]``. Pages are
        requested one after another; any failed page fails the whole call.
        Records whose own ``media_type`` is neither movie nor tv are skipped.
        """

        page_count = clamp_int(
            pages, default=1, lower=1, upper=self._settings.tmdb_catalog_max_pages
        )
        first_page = clamp_int(
            start_page,
            default=1,
            lower=1,
            upper=self._settings.tmdb_catalog_max_start_page,
        )

        titles: list[Title] = []
        for page in range(first_page, first_page + page_count):
            payload = await self.get_json(endpoint, {**(params or {}), "page": page})
            results = payload.get("results") or []
            if not isinstance(results, list):
                raise UpstreamFailure(SERVICE_NAME, f"{endpoint} page {page} lacks results")
            for record in results:
                if not isinstance(record, dict) or record.get("id") is None:
                    continue
                if media_type is None and record.get("media_type") not in (None, "movie", "tv"):
                    continue
                titles.append(Title.from_tmdb(record, media_type))
        return titles

    async def discover(
        self,
        media_type: MediaType,
        *,
        pages: int,
        start_page: int = 1,
        provider_ids: tuple[int, ...] = (),
        sort_by: str = "popularity.desc",
        extra: Mapping[str, Any] | None = None,
    ) -> list[Title]:
        """Run ``/discover`` for one media type, optionally filtered by providers."""

        params: dict[str, Any] = {"sort_by": sort_by, "include_adult": "false"}
        if provider_ids:
            params.update(
                {
                    "with_watch_providers": "|".join(str(pid) for pid in provider_ids),
                    "watch_region": self._settings.tmdb_watch_region,
                    "with_watch_monetization_types": "flatrate",
                }
            )
        if extra:
            params.update(extra)
        return await self.fetch_pages(
            f"/discover/{upstream_media_type(media_type)}",
            media_type=media_type,
            pages=pages,
            params=params,
            start_page=start_page,
        )

    async def search_multi(self, query: str, *, pages: int = 1) -> list[Title]:
        return await self.fetch_pages(
            "/search/multi",
            pages=pages,
            params={"query": query, "include_adult": "false"},
        )

    async def get_details(self, media_type: MediaType, title_id: int) -> Title | None:
        """Return the detail record, or ``None`` when the provider reports 404."""

        path = f"/{upstream_media_type(media_type)}/{title_id}"
        try:
            payload = await self.get_json(path)
        except UpstreamFailure as exc:
            if exc.status == 404:
                return None
            raise
        if payload.get("id") is None:
            return None
        return Title.from_tmdb(payload, media_type)

    async def find_title(
        self, title_id: int, media_type: MediaType | None = None
    ) -> Title | None:
        """Look a title up by id; without a media type the movie record wins."""

        if media_type is not None:
            return await self.get_details(media_type, title_id)

        movie, series = await asyncio.gather(
            self.get_details("movie", title_id),
            self.get_details("series", title_id),
            return_exceptions=True,
        )
        for candidate in (movie, series):
            if isinstance(candidate, Title):
                return candidate
        for candidate in (movie, series):
            if isinstance(candidate, BaseException):
                raise candidate
        return None

    async def watch_providers(
        self, media_type: MediaType, title_id: int
    ) -> Outcome[dict[str, Any]]:
        """Return the per-region provider map for a title."""

        path = f"/{upstream_media_type(media_type)}/{title_id}/watch/providers"
        try:
            payload = await self.get_json(path)
        except UpstreamFailure as exc:
            return Outcome.failure(exc)
        except ConfigurationError as exc:
            return Outcome.failure(UpstreamFailure(SERVICE_NAME, exc.message))
        results = payload.get("results")
        if not isinstance(results, dict):
            return Outcome.success({})
        return Outcome.success(results)
