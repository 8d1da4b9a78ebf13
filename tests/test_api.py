"""HTTP surface tests using in-memory collaborators."""

from __future__ import annotations

from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from app.cache import ResponseCache
from app.config import Settings
from app.errors import ConfigurationError, UpstreamFailure
from app.main import create_app
from app.models import Preferences, PreferencesUpdate, SearchHistoryEntry, Title
from app.services.catalog import CatalogAggregator
from app.services.enrichment import ProviderEnricher
from app.services.outcome import Outcome
from app.services.stream import StreamService
from app.services.watchmode import WatchmodeClient


class FakeTMDBClient:
    def __init__(self) -> None:
        self.search_calls = 0
        self.search_error: Exception | None = None
        self.titles = {
            94605: Title(id=94605, media_type="series", title="Arcane", popularity=80.0),
            415: Title(id=415, media_type="movie", title="Batman", popularity=40.0),
        }

    async def fetch_pages(self, endpoint: str, **_: Any) -> list[Title]:
        return list(self.titles.values())

    async def discover(self, media_type: str, **_: Any) -> list[Title]:
        return [title for title in self.titles.values() if title.media_type == media_type]

    async def search_multi(self, query: str, *, pages: int = 1) -> list[Title]:
        self.search_calls += 1
        if self.search_error is not None:
            raise self.search_error
        return [self.titles[415]]

    async def find_title(self, title_id: int, media_type: str | None = None) -> Title | None:
        return self.titles.get(title_id)

    async def watch_providers(self, media_type: str, title_id: int) -> Outcome[dict[str, Any]]:
        return Outcome.success(
            {"BR": {"flatrate": [{"provider_id": 8, "provider_name": "Netflix"}]}}
        )


class FakeUserService:
    def __init__(self) -> None:
        self.preferences = Preferences(
            user_id=1, favorite_genre="Action", theme="dark", selected_platforms=["Netflix"]
        )
        self.history: list[str] = []

    async def get_preferences(self) -> Preferences:
        return self.preferences

    async def update_preferences(self, update: PreferencesUpdate) -> Preferences:
        changes: dict[str, Any] = {}
        if update.favorite_genre:
            changes["favorite_genre"] = update.favorite_genre
        if update.theme:
            changes["theme"] = update.theme
        if update.selected_platforms is not None:
            changes["selected_platforms"] = update.selected_platforms
        self.preferences = self.preferences.model_copy(update=changes)
        return self.preferences

    async def add_search_history(self, query: str) -> None:
        self.history.append(query)

    async def recent_searches(self) -> list[SearchHistoryEntry]:
        return []


@pytest.fixture
def tmdb() -> FakeTMDBClient:
    return FakeTMDBClient()


@pytest.fixture
def users() -> FakeUserService:
    return FakeUserService()


@pytest.fixture
def client(tmdb: FakeTMDBClient, users: FakeUserService) -> TestClient:
    settings = Settings(_env_file=None, TMDB_API_KEY="tmdb-key")  # type: ignore[arg-type]
    app = create_app(settings)
    app.state.stream_service = StreamService(
        settings,
        CatalogAggregator(settings, tmdb),  # type: ignore[arg-type]
        ProviderEnricher(settings, tmdb),  # type: ignore[arg-type]
        WatchmodeClient(settings, httpx.AsyncClient()),
        users,  # type: ignore[arg-type]
    )
    app.state.response_cache = ResponseCache(default_ttl=300)
    return TestClient(app)


def test_health(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_platforms_list_the_static_catalog(client: TestClient) -> None:
    response = client.get("/api/platforms")

    names = [entry["name"] for entry in response.json()["data"]]
    assert names == ["Netflix", "HBO Max", "Prime Video", "Disney+", "Apple TV+"]
    assert response.json()["data"][0]["id"] == "netflix"


def test_search_requires_a_query(client: TestClient) -> None:
    response = client.get("/api/search", params={"q": "  "})

    assert response.status_code == 400
    assert "q" in response.json()["message"]


def test_search_returns_mapped_titles_and_is_cached(
    client: TestClient, tmdb: FakeTMDBClient, users: FakeUserService
) -> None:
    first = client.get("/api/search", params={"q": "batman"})
    second = client.get("/api/search", params={"q": "batman"})

    assert first.status_code == 200
    assert first.json() == second.json()
    entry = first.json()["data"][0]
    assert entry["id"] == 415
    assert entry["mediaType"] == "movie"
    assert entry["availableOn"] == ["Netflix"]
    assert entry["deepLinks"][0]["webUri"] == "https://www.netflix.com/search?q=Batman"
    assert "recommendationScore" not in entry
    assert tmdb.search_calls == 1
    assert users.history == ["batman"]


def test_missing_catalog_credentials_answer_503(client: TestClient, tmdb: FakeTMDBClient) -> None:
    tmdb.search_error = ConfigurationError("TMDB_API_KEY is not configured")

    response = client.get("/api/search", params={"q": "dune"})

    assert response.status_code == 503
    assert response.json() == {"message": "TMDB_API_KEY is not configured"}


def test_upstream_failures_answer_500(client: TestClient, tmdb: FakeTMDBClient) -> None:
    tmdb.search_error = UpstreamFailure("tmdb", "/search/multi returned HTTP 502", status=502)

    response = client.get("/api/search", params={"q": "dune"})

    assert response.status_code == 500
    assert response.json() == {"message": "Upstream provider request failed"}


def test_platform_catalog_validates_the_name(client: TestClient) -> None:
    missing = client.get("/api/catalog/platform")
    unknown = client.get("/api/catalog/platform", params={"name": "Crunchyroll"})

    assert missing.status_code == 400
    assert unknown.status_code == 404


def test_platform_catalog_returns_clamped_meta(client: TestClient) -> None:
    response = client.get(
        "/api/catalog/platform",
        params={"name": "Netflix Standard with Ads", "pages": "100", "limit": "1"},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["meta"] == {
        "platform": "Netflix",
        "page": 1,
        "pages": 8,
        "limit": 20,
        "mode": "popular",
    }
    assert {entry["id"] for entry in body["data"]} == {94605, 415}
    assert all(entry["availableOn"] == ["Netflix"] for entry in body["data"])


def test_title_detail_includes_curated_direct_links(client: TestClient) -> None:
    response = client.get("/api/title/94605", params={"mediaType": "tv"})

    data = response.json()["data"]
    assert data["title"] == "Arcane"
    assert data["watchRegion"] == "BR"
    assert data["deepLinks"][0]["directWebUri"] == "https://www.netflix.com/title/81435684"


def test_unknown_title_is_404(client: TestClient) -> None:
    response = client.get("/api/title/999")

    assert response.status_code == 404
    assert response.json() == {"message": "Title 999 not found"}


def test_unknown_route_is_404(client: TestClient) -> None:
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"message": "Route not found"}


def test_preferences_partial_update(client: TestClient) -> None:
    response = client.put("/api/user/preferences", json={"theme": "light"})

    data = response.json()["data"]
    assert response.status_code == 200
    assert data["theme"] == "light"
    assert data["favoriteGenre"] == "Action"
    assert data["selectedPlatforms"] == ["Netflix"]


def test_preferences_reject_malformed_payloads(client: TestClient) -> None:
    response = client.put("/api/user/preferences", json={"selectedPlatforms": "Netflix"})

    assert response.status_code == 400


def test_recommendations_are_scored(client: TestClient) -> None:
    response = client.get("/api/recommendations")

    body = response.json()
    assert body["meta"] == {"favoriteGenre": "Action"}
    assert [entry["id"] for entry in body["data"]] == [94605, 415]
    assert body["data"][0]["recommendationScore"] == 80.0


def test_console_package_exposes_the_application() -> None:
    import streamhub
    from fastapi import FastAPI

    assert isinstance(streamhub.app, FastAPI)
    assert streamhub.create_app is create_app


def test_preferences_reject_malformed_json(client: TestClient, users: FakeUserService) -> None:
    response = client.put(
        "/api/user/preferences",
        content=b"{theme: light",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"message": "Request body must be valid JSON"}
    assert users.preferences.theme == "dark"
