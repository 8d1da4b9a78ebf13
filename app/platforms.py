"""Static platform tables and the platform mapper."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping
from urllib.parse import quote

from .models import DeepLink, DirectLink, PlatformInfo, Title


class Platform(str, Enum):
    """Canonical, user-facing platform names."""

    NETFLIX = "Netflix"
    HBO_MAX = "HBO Max"
    PRIME_VIDEO = "Prime Video"
    DISNEY_PLUS = "Disney+"
    APPLE_TV_PLUS = "Apple TV+"


@dataclass(frozen=True)
class PlatformDefinition:
    """Describes a supported platform and how to link into it."""

    platform: Platform
    slug: str
    color: str
    provider_ids: tuple[int, ...]
    app_search: str
    web_search: str

    @property
    def name(self) -> str:
        return self.platform.value

    def to_info(self) -> PlatformInfo:
        return PlatformInfo(id=self.slug, name=self.name, color=self.color)


PLATFORM_CATALOG: tuple[PlatformDefinition, ...] = (
    PlatformDefinition(
        platform=Platform.NETFLIX,
        slug="netflix",
        color="#E50914",
        provider_ids=(8,),
        app_search="nflx://www.netflix.com/search?q={query}",
        web_search="https://www.netflix.com/search?q={query}",
    ),
    PlatformDefinition(
        platform=Platform.HBO_MAX,
        slug="max",
        color="#6C3BFF",
        provider_ids=(1899, 384),
        app_search="hbomax://search/{query}",
        web_search="https://play.max.com/search?q={query}",
    ),
    PlatformDefinition(
        platform=Platform.PRIME_VIDEO,
        slug="prime",
        color="#00A8E1",
        provider_ids=(119,),
        app_search="primevideo://search?phrase={query}",
        web_search="https://www.primevideo.com/search/ref=atv_nb_sr?phrase={query}",
    ),
    PlatformDefinition(
        platform=Platform.DISNEY_PLUS,
        slug="disney",
        color="#113CCF",
        provider_ids=(337,),
        app_search="disneyplus://search?q={query}",
        web_search="https://www.disneyplus.com/search/{query}",
    ),
    PlatformDefinition(
        platform=Platform.APPLE_TV_PLUS,
        slug="apple",
        color="#A3A3A3",
        provider_ids=(350,),
        app_search="videos://search?term={query}",
        web_search="https://tv.apple.com/search?term={query}",
    ),
)

PLATFORM_DEFINITIONS: dict[str, PlatformDefinition] = {
    definition.name: definition for definition in PLATFORM_CATALOG
}

FALLBACK_SEARCH = "https://www.google.com/search?q={query}+streaming"

# Keys are matched exactly as the upstream providers spell them.
PROVIDER_ALIASES: dict[str, Platform] = {
    "Max": Platform.HBO_MAX,
    "HBO Max": Platform.HBO_MAX,
    "HBO MAX": Platform.HBO_MAX,
    "Netflix": Platform.NETFLIX,
    "Netflix Standard with Ads": Platform.NETFLIX,
    "Amazon Prime Video": Platform.PRIME_VIDEO,
    "Prime Video": Platform.PRIME_VIDEO,
    "Amazon Prime Video with Ads": Platform.PRIME_VIDEO,
    "Amazon Prime": Platform.PRIME_VIDEO,
    "Amazon": Platform.PRIME_VIDEO,
    "PrimeVideo": Platform.PRIME_VIDEO,
    "HBO Max Amazon Channel": Platform.PRIME_VIDEO,
    "Disney Plus": Platform.DISNEY_PLUS,
    "Disney+": Platform.DISNEY_PLUS,
    "Apple TV Plus": Platform.APPLE_TV_PLUS,
    "Apple TV+": Platform.APPLE_TV_PLUS,
    "AppleTV": Platform.APPLE_TV_PLUS,
}


class SourceCategory(str, Enum):
    """Direct-link source categories reported by the secondary provider."""

    SUBSCRIPTION = "sub"
    FREE = "free"
    AD_SUPPORTED = "ads"
    BUY = "buy"
    RENT = "rent"


SOURCE_RANKS: dict[SourceCategory, int] = {
    SourceCategory.SUBSCRIPTION: 3,
    SourceCategory.FREE: 2,
    SourceCategory.AD_SUPPORTED: 2,
    SourceCategory.BUY: 1,
    SourceCategory.RENT: 1,
}

# Hand-picked links for a few titles, used when nothing dynamic is known.
CURATED_DIRECT_LINKS: dict[str, dict[str, DirectLink]] = {
    "arcane": {
        Platform.NETFLIX.value: DirectLink(
            app_uri="nflx://www.netflix.com/title/81435684",
            web_uri="https://www.netflix.com/title/81435684",
        ),
    },
    "game of thrones": {
        Platform.HBO_MAX.value: DirectLink(
            app_uri="hbomax://series/urn:hbo:series:GVU2cggagzYNJjhsJATwo",
            web_uri="https://play.max.com/show/6d6d9f7f-7f8f-4c54-96a6-2f4f44b4a8bc",
        ),
    },
}


def validate_tables() -> None:
    """Check the lookup tables for internal consistency.

    Raises ``ValueError`` describing the first inconsistency found.
    """

    for platform in Platform:
        definition = PLATFORM_DEFINITIONS.get(platform.value)
        if definition is None:
            raise ValueError(f"Platform {platform.value} has no catalog entry")
        if not definition.provider_ids:
            raise ValueError(f"Platform {platform.value} has no provider ids")
        for template in (definition.app_search, definition.web_search):
            if "{query}" not in template:
                raise ValueError(f"Link template for {platform.value} lacks a query slot")
        if PROVIDER_ALIASES.get(platform.value) is not platform:
            raise ValueError(f"Canonical name {platform.value} must alias to itself")

    slugs = [definition.slug for definition in PLATFORM_CATALOG]
    if len(set(slugs)) != len(slugs):
        raise ValueError("Platform slugs must be unique")

    for alias, platform in PROVIDER_ALIASES.items():
        if alias != alias.strip():
            raise ValueError(f"Alias {alias!r} carries surrounding whitespace")
        once = normalize_provider_name(alias)
        if once != platform.value or normalize_provider_name(once) != once:
            raise ValueError(f"Alias {alias!r} does not normalise idempotently")

    for category in SourceCategory:
        if category not in SOURCE_RANKS:
            raise ValueError(f"Source category {category.value} has no rank")

    for entries in CURATED_DIRECT_LINKS.values():
        for platform_name in entries:
            if platform_name not in PLATFORM_DEFINITIONS:
                raise ValueError(f"Curated link targets unknown platform {platform_name}")


def normalize_provider_name(name: Any) -> str:
    """Return the canonical platform name; unknown names pass through."""

    cleaned = str(name or "").strip()
    platform = PROVIDER_ALIASES.get(cleaned)
    return platform.value if platform is not None else cleaned


def source_rank(category: Any) -> int:
    """Rank a source category; unknown categories rank lowest."""

    try:
        return SOURCE_RANKS[SourceCategory(str(category or "").strip().lower())]
    except ValueError:
        return 0


def resolve_platform(name: str) -> PlatformDefinition | None:
    return PLATFORM_DEFINITIONS.get(normalize_provider_name(name))


def provider_ids_for(name: str) -> tuple[int, ...]:
    """Return the catalog-provider ids backing a platform name."""

    definition = resolve_platform(name)
    return definition.provider_ids if definition else ()


def list_platforms() -> list[PlatformInfo]:
    return [definition.to_info() for definition in PLATFORM_CATALOG]


def deep_link_for(platform_name: str, title: str) -> str:
    """Generic in-app search link for ``title`` on the platform."""

    definition = PLATFORM_DEFINITIONS.get(platform_name)
    template = definition.app_search if definition else FALLBACK_SEARCH
    return template.format(query=_encode(title))


def web_link_for(platform_name: str, title: str) -> str:
    """Generic web search link for ``title`` on the platform."""

    definition = PLATFORM_DEFINITIONS.get(platform_name)
    template = definition.web_search if definition else FALLBACK_SEARCH
    return template.format(query=_encode(title))


def curated_direct_link(title: str, platform_name: str) -> DirectLink | None:
    key = (title or "").strip().lower()
    return CURATED_DIRECT_LINKS.get(key, {}).get(platform_name)


def map_platforms_to_title(
    title: Title,
    direct_links: Mapping[str, DirectLink] | None = None,
) -> Title:
    """Attach normalised availability and deep links to ``title``.

    ``availableOn`` keeps first-seen order: catalog provider names first, then
    any platforms only known from ``direct_links``.
    """

    normalised_links: dict[str, DirectLink] = {}
    for name, link in (direct_links or {}).items():
        platform_name = normalize_provider_name(name)
        if platform_name:
            normalised_links[platform_name] = link

    available_on = _unique(
        name
        for name in (
            *(normalize_provider_name(raw) for raw in title.provider_names),
            *normalised_links.keys(),
        )
        if name
    )

    deep_links: list[DeepLink] = []
    for platform_name in available_on:
        direct = normalised_links.get(platform_name) or curated_direct_link(
            title.title, platform_name
        )
        deep_links.append(
            DeepLink(
                platform=platform_name,
                app_uri=deep_link_for(platform_name, title.title),
                web_uri=web_link_for(platform_name, title.title),
                direct_app_uri=direct.app_uri if direct else None,
                direct_web_uri=direct.web_uri if direct else None,
            )
        )

    return title.model_copy(update={"available_on": available_on, "deep_links": deep_links})


def _unique(values: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def _encode(value: str) -> str:
    return quote(value or "", safe="!~*'()")
