"""Preference-driven ranking of enriched titles."""

from __future__ import annotations

from typing import Sequence

from ..models import Title

GENRE_BONUS = 150.0
VOTE_WEIGHT = 10.0
MAX_RECOMMENDATIONS = 10

GENRE_BOOSTS: dict[str, frozenset[int]] = {
    "Action": frozenset({28, 12, 878}),
    "Comedy": frozenset({35}),
    "Drama": frozenset({18}),
    "Horror": frozenset({27}),
    "Animation": frozenset({16}),
    "SciFi": frozenset({878}),
}
DEFAULT_GENRE_BOOST: frozenset[int] = frozenset({28, 18})


def score_title(title: Title, favorite_genre: str | None) -> float:
    boosts = GENRE_BOOSTS.get(favorite_genre or "", DEFAULT_GENRE_BOOST)
    bonus = GENRE_BONUS if boosts.intersection(title.genre_ids) else 0.0
    return title.popularity + bonus + title.vote_average * VOTE_WEIGHT


def get_recommendations(
    titles: Sequence[Title],
    favorite_genre: str | None,
    selected_platforms: Sequence[str] | None,
) -> list[Title]:
    """Filter by the user's platforms, score and return the top ten."""

    selected = set(selected_platforms or [])
    candidates = [
        title
        for title in titles
        if not selected or selected.intersection(title.available_on)
    ]
    scored = [
        title.model_copy(update={"recommendation_score": score_title(title, favorite_genre)})
        for title in candidates
    ]
    scored.sort(key=lambda title: title.recommendation_score or 0.0, reverse=True)
    return scored[:MAX_RECOMMENDATIONS]
