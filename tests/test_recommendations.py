from __future__ import annotations

from app.models import Title
from app.services.recommendations import get_recommendations, score_title


def _title(identifier: int, **fields) -> Title:
    fields.setdefault("title", f"Title {identifier}")
    return Title(id=identifier, media_type="movie", **fields)


def test_score_adds_genre_bonus_and_vote_weight() -> None:
    title = _title(1, popularity=10.0, vote_average=7.5, genre_ids=[28])

    assert score_title(title, "Action") == 10.0 + 150.0 + 75.0
    assert score_title(title, "Comedy") == 10.0 + 75.0


def test_unknown_genre_uses_the_default_boost() -> None:
    drama = _title(1, genre_ids=[18])

    assert score_title(drama, "Western") == 150.0
    assert score_title(drama, None) == 150.0


def test_filters_by_selected_platforms_and_ranks() -> None:
    titles = [
        _title(1, popularity=50.0, available_on=["Disney+"]),
        _title(2, popularity=20.0, available_on=["Netflix"]),
        _title(3, popularity=5.0, genre_ids=[35], available_on=["Netflix", "HBO Max"]),
    ]

    ranked = get_recommendations(titles, "Comedy", ["Netflix"])

    assert [title.id for title in ranked] == [3, 2]
    assert ranked[0].recommendation_score == 155.0
    assert titles[2].recommendation_score is None


def test_empty_selection_keeps_every_title_and_caps_at_ten() -> None:
    titles = [_title(index, popularity=float(index)) for index in range(15)]

    ranked = get_recommendations(titles, "Horror", [])

    assert len(ranked) == 10
    assert [title.id for title in ranked] == list(range(14, 4, -1))


def test_ties_keep_input_order() -> None:
    titles = [_title(index, popularity=1.0) for index in range(3)]

    ranked = get_recommendations(titles, "Action", None)

    assert [title.id for title in ranked] == [0, 1, 2]
