"""Pydantic models describing titles, platforms and user state."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MediaType = Literal["movie", "series"]
IdentityKey = tuple[str, int]

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
BACKDROP_BASE_URL = "https://image.tmdb.org/t/p/w780"

_MEDIA_TYPE_ALIASES: dict[str, MediaType] = {
    "movie": "movie",
    "tv": "series",
    "series": "series",
}


def parse_media_type(value: Any) -> MediaType | None:
    """Map ``movie``/``tv``/``series`` onto the canonical media type."""

    if not isinstance(value, str):
        return None
    return _MEDIA_TYPE_ALIASES.get(value.strip().lower())


def upstream_media_type(media_type: MediaType) -> str:
    """Return the path segment the catalog provider uses for ``media_type``."""

    return "tv" if media_type == "series" else "movie"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class DeepLink(_CamelModel):
    """Per-platform links attached to a title."""

    platform: str
    app_uri: str
    web_uri: str
    direct_app_uri: str | None = None
    direct_web_uri: str | None = None


class DirectLink(_CamelModel):
    """A resolved direct link for one platform."""

    app_uri: str | None = None
    web_uri: str


class Title(_CamelModel):
    """Canonical movie or series record."""

    id: int
    media_type: MediaType
    title: str
    overview: str | None = None
    poster: str | None = None
    backdrop: str | None = None
    release_date: str | None = None
    genre_ids: list[int] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    popularity: float = 0.0
    vote_average: float = 0.0
    provider_names: list[str] = Field(default_factory=list)
    provider_link: str | None = None
    watch_region: str | None = None
    available_on: list[str] = Field(default_factory=list)
    deep_links: list[DeepLink] = Field(default_factory=list)
    recommendation_score: float | None = None

    @property
    def key(self) -> IdentityKey:
        """Identity used for every deduplication and merge."""

        return (self.media_type, self.id)

    @classmethod
    def from_tmdb(
        cls, record: dict[str, Any], media_type: str | None = None
    ) -> "Title":
        """Normalise a catalog-provider record.

        An explicit ``media_type`` hint wins; otherwise the record's own
        ``media_type`` field is used, then the presence of ``first_air_date``
        marks a series. Missing optional fields become ``None`` or zero.
        """

        resolved = (
            parse_media_type(media_type)
            or parse_media_type(record.get("media_type"))
            or ("series" if record.get("first_air_date") else "movie")
        )
        display = (
            record.get("title")
            or record.get("name")
            or record.get("original_title")
            or record.get("original_name")
            or ""
        )
        release = record.get("release_date") or record.get("first_air_date") or None

        genre_ids: list[int] = []
        raw_ids = record.get("genre_ids")
        if not isinstance(raw_ids, list):
            raw_ids = [
                genre.get("id")
                for genre in record.get("genres") or []
                if isinstance(genre, dict)
            ]
        for value in raw_ids:
            try:
                genre_id = int(value)
            except (TypeError, ValueError):
                continue
            if genre_id not in genre_ids:
                genre_ids.append(genre_id)

        genre_names = [
            str(genre["name"])
            for genre in record.get("genres") or []
            if isinstance(genre, dict) and genre.get("name")
        ]

        return cls(
            id=int(record["id"]),
            media_type=resolved,
            title=str(display),
            overview=record.get("overview") or None,
            poster=_image_url(record.get("poster_path"), POSTER_BASE_URL),
            backdrop=_image_url(record.get("backdrop_path"), BACKDROP_BASE_URL),
            release_date=release if isinstance(release, str) else None,
            genre_ids=genre_ids,
            genres=genre_names,
            popularity=_as_float(record.get("popularity")),
            vote_average=_as_float(record.get("vote_average")),
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body exposed by the API."""

        exclude = {"recommendation_score"} if self.recommendation_score is None else None
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


class ProviderAvailability(_CamelModel):
    """Watch-provider data attached to a title during enrichment."""

    provider_names: list[str] = Field(default_factory=list)
    provider_link: str | None = None
    watch_region: str | None = None


class PlatformInfo(_CamelModel):
    """Static platform catalog entry."""

    id: str
    name: str
    color: str


class Preferences(_CamelModel):
    user_id: int
    favorite_genre: str
    theme: str
    selected_platforms: list[str] = Field(default_factory=list)


class PreferencesUpdate(_CamelModel):
    """Partial preference update; omitted or empty fields keep their values."""

    favorite_genre: str | None = None
    theme: str | None = None
    selected_platforms: list[str] | None = None


class SearchHistoryEntry(_CamelModel):
    query: str
    created_at: datetime


def _image_url(path: Any, base_url: str) -> str | None:
    if not isinstance(path, str) or not path:
        return None
    if path.startswith("http"):
        return path
    return f"{base_url}{path}"


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0
