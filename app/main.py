"""Entry point for the FastAPI-powered StreamHub API."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Awaitable, Callable

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cache import ResponseCache
from .config import Settings, settings
from .database import Database
from .errors import StreamHubError, UpstreamFailure, ValidationError
from .models import PreferencesUpdate
from .platforms import validate_tables
from .services.catalog import CatalogAggregator
from .services.enrichment import ProviderEnricher
from .services.stream import StreamService
from .services.tmdb import TMDBClient
from .services.users import UserService
from .services.watchmode import WatchmodeClient

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

MOST_WATCHED_TTL = 180
PLATFORM_CATALOG_TTL = 300
NEW_RELEASES_TTL = 300
SEARCH_TTL = 120

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    app_settings: Settings = fastapi_app.state.settings
    validate_tables()

    exit_stack = AsyncExitStack()
    timeout = httpx.Timeout(app_settings.http_timeout_seconds, connect=5.0)
    tmdb_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=str(app_settings.tmdb_base_url), timeout=timeout)
    )
    watchmode_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=str(app_settings.watchmode_base_url), timeout=timeout)
    )
    database = Database(app_settings.database_url)
    await database.create_all()
    cache = ResponseCache(
        default_ttl=app_settings.cache_ttl_seconds,
        max_entries=app_settings.cache_max_entries,
    )
    await cache.start()

    tmdb = TMDBClient(app_settings, tmdb_http)
    if not tmdb.configured:
        logger.warning("TMDB_API_KEY is not set; catalog routes will answer 503")
    watchmode = WatchmodeClient(app_settings, watchmode_http)
    if not watchmode.configured:
        logger.info("WATCHMODE_API_KEY is not set; direct links are disabled")

    fastapi_app.state.stream_service = StreamService(
        app_settings,
        CatalogAggregator(app_settings, tmdb),
        ProviderEnricher(app_settings, tmdb),
        watchmode,
        UserService(app_settings, database.session_factory),
    )
    fastapi_app.state.response_cache = cache
    fastapi_app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await cache.close()
        await database.dispose()
        await exit_stack.aclose()


def create_app(app_settings: Settings | None = None) -> FastAPI:
    resolved_settings = app_settings or settings
    fastapi_app = FastAPI(
        title=resolved_settings.app_name,
        description="Streaming catalog aggregation with watch availability and deep links",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "PUT"],
        allow_headers=["*"],
    )

    fastapi_app.state.settings = resolved_settings

    register_exception_handlers(fastapi_app)
    register_routes(fastapi_app)
    return fastapi_app


def get_stream_service(fastapi_app: FastAPI) -> StreamService:
    service = getattr(fastapi_app.state, "stream_service", None)
    if service is None:
        raise RuntimeError("Stream service not initialised")
    return service


def get_response_cache(fastapi_app: FastAPI) -> ResponseCache:
    cache = getattr(fastapi_app.state, "response_cache", None)
    if cache is None:
        raise RuntimeError("Response cache not initialised")
    return cache


def register_exception_handlers(fastapi_app: FastAPI) -> None:
    @fastapi_app.exception_handler(StreamHubError)
    async def _streamhub_error(_: Request, exc: StreamHubError) -> JSONResponse:
        if isinstance(exc, UpstreamFailure):
            logger.error("Upstream failure: %s", exc.message)
            return JSONResponse(
                {"message": "Upstream provider request failed"}, status_code=500
            )
        return JSONResponse({"message": exc.message}, status_code=exc.status_code)

    @fastapi_app.exception_handler(StarletteHTTPException)
    async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse({"message": "Route not found"}, status_code=404)
        return JSONResponse({"message": str(exc.detail)}, status_code=exc.status_code)

    @fastapi_app.exception_handler(RequestValidationError)
    async def _request_validation_error(
        _: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse({"message": "Invalid request parameters"}, status_code=400)

    @fastapi_app.exception_handler(Exception)
    async def _unhandled_error(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse({"message": "Internal server error"}, status_code=500)


def register_routes(fastapi_app: FastAPI) -> None:
    def _cache_key(request: Request) -> str:
        query = request.url.query
        return f"{request.url.path}?{query}" if query else request.url.path

    async def _cached(
        request: Request,
        producer: Callable[[], Awaitable[dict[str, Any]]],
        ttl: int | None = None,
    ) -> JSONResponse:
        cache = get_response_cache(fastapi_app)
        key = _cache_key(request)
        hit = cache.get(key)
        if hit is not None:
            return JSONResponse(hit)
        body = await producer()
        cache.set(key, body, ttl)
        return JSONResponse(body)

    @fastapi_app.get("/api/health")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok", "service": "streamhub-api"}

    @fastapi_app.get("/api/platforms")
    async def platforms(request: Request) -> JSONResponse:
        service = get_stream_service(fastapi_app)

        async def _produce() -> dict[str, Any]:
            return {
                "data": [
                    platform.model_dump(by_alias=True) for platform in service.platforms()
                ]
            }

        return await _cached(request, _produce)

    @fastapi_app.get("/api/trending")
    async def trending(request: Request) -> JSONResponse:
        service = get_stream_service(fastapi_app)

        async def _produce() -> dict[str, Any]:
            titles = await service.trending()
            return {"data": [title.to_payload() for title in titles]}

        return await _cached(request, _produce)

    @fastapi_app.get("/api/most-watched")
    async def most_watched(request: Request) -> JSONResponse:
        service = get_stream_service(fastapi_app)

        async def _produce() -> dict[str, Any]:
            titles = await service.most_watched()
            return {"data": [title.to_payload() for title in titles]}

        return await _cached(request, _produce, MOST_WATCHED_TTL)

    @fastapi_app.get("/api/catalog/platform")
    async def platform_catalog(
        request: Request,
        name: str | None = None,
        page: str | None = None,
        pages: str | None = None,
        limit: str | None = None,
        mode: str | None = None,
    ) -> JSONResponse:
        service = get_stream_service(fastapi_app)

        async def _produce() -> dict[str, Any]:
            catalog = await service.platform_catalog(
                name,
                page=page if page is not None else 1,
                pages=pages if pages is not None else 2,
                limit=limit if limit is not None else 240,
                mode=mode,
            )
            return {
                "data": [title.to_payload() for title in catalog.titles],
                "meta": {
                    "platform": catalog.platform,
                    "page": catalog.window.page,
                    "pages": catalog.window.pages,
                    "limit": catalog.window.limit,
                    "mode": catalog.mode,
                },
            }

        return await _cached(request, _produce, PLATFORM_CATALOG_TTL)

    @fastapi_app.get("/api/catalog/new-releases")
    async def new_releases(
        request: Request,
        platforms: str | None = None,
        pages: str | None = None,
        limit: str | None = None,
    ) -> JSONResponse:
        service = get_stream_service(fastapi_app)

        async def _produce() -> dict[str, Any]:
            releases = await service.new_releases(
                platforms,
                pages=pages if pages is not None else 2,
                limit=limit if limit is not None else 240,
            )
            return {
                "data": [title.to_payload() for title in releases.titles],
                "meta": {
                    "platforms": releases.platforms,
                    "pages": releases.window.pages,
                    "limit": releases.window.limit,
                },
            }

        return await _cached(request, _produce, NEW_RELEASES_TTL)

    @fastapi_app.get("/api/search")
    async def search(request: Request, q: str | None = None) -> JSONResponse:
        service = get_stream_service(fastapi_app)

        async def _produce() -> dict[str, Any]:
            titles = await service.search(q)
            return {"data": [title.to_payload() for title in titles]}

        return await _cached(request, _produce, SEARCH_TTL)

    @fastapi_app.get("/api/title/{title_id}")
    async def title_detail(
        request: Request,
        title_id: str,
        media_type: str | None = Query(default=None, alias="mediaType"),
    ) -> JSONResponse:
        service = get_stream_service(fastapi_app)

        async def _produce() -> dict[str, Any]:
            title = await service.title(title_id, media_type)
            return {"data": title.to_payload()}

        return await _cached(request, _produce)

    @fastapi_app.get("/api/recommendations")
    async def recommendations(request: Request) -> JSONResponse:
        service = get_stream_service(fastapi_app)

        async def _produce() -> dict[str, Any]:
            result = await service.recommendations()
            return {
                "data": [title.to_payload() for title in result.titles],
                "meta": {"favoriteGenre": result.preferences.favorite_genre},
            }

        return await _cached(request, _produce)

    @fastapi_app.get("/api/user/preferences")
    async def get_preferences() -> dict[str, Any]:
        service = get_stream_service(fastapi_app)
        preferences = await service.users.get_preferences()
        return {"data": preferences.model_dump(by_alias=True)}

    @fastapi_app.put("/api/user/preferences")
    async def update_preferences(request: Request) -> dict[str, Any]:
        service = get_stream_service(fastapi_app)
        try:
            payload = await request.json()
        except ValueError as exc:
            raise ValidationError("Request body must be valid JSON") from exc
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        try:
            update = PreferencesUpdate.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError("Invalid preferences payload") from exc
        preferences = await service.users.update_preferences(update)
        return {"data": preferences.model_dump(by_alias=True)}

    @fastapi_app.get("/api/user/search-history")
    async def search_history() -> dict[str, Any]:
        service = get_stream_service(fastapi_app)
        entries = await service.users.recent_searches()
        return {"data": [entry.model_dump(mode="json", by_alias=True) for entry in entries]}


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
