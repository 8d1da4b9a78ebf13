from app.models import Title, parse_media_type, upstream_media_type


def test_from_tmdb_prefers_explicit_hint():
    title = Title.from_tmdb(
        {"id": 7, "name": "Dark", "first_air_date": "2017-12-01", "media_type": "tv"},
        "movie",
    )

    assert title.media_type == "movie"
    assert title.key == ("movie", 7)


def test_from_tmdb_infers_series_from_air_date():
    title = Title.from_tmdb(
        {
            "id": 94605,
            "name": "Arcane",
            "first_air_date": "2021-11-06",
            "poster_path": "/arcane.jpg",
            "genre_ids": [16, 10765, 16],
            "popularity": 88.5,
            "vote_average": 8.7,
        }
    )

    assert title.media_type == "series"
    assert title.title == "Arcane"
    assert title.release_date == "2021-11-06"
    assert title.poster == "https://image.tmdb.org/t/p/w500/arcane.jpg"
    assert title.genre_ids == [16, 10765]
    assert title.popularity == 88.5


def test_from_tmdb_defaults_missing_fields():
    title = Title.from_tmdb({"id": 1, "title": "Bare"})

    assert title.media_type == "movie"
    assert title.poster is None
    assert title.backdrop is None
    assert title.release_date is None
    assert title.overview is None
    assert title.genre_ids == []
    assert title.popularity == 0.0
    assert title.vote_average == 0.0


def test_from_tmdb_reads_detail_genres():
    title = Title.from_tmdb(
        {"id": 2, "title": "Heat", "genres": [{"id": 28, "name": "Action"}, {"id": 80, "name": "Crime"}]},
        "movie",
    )

    assert title.genre_ids == [28, 80]
    assert title.genres == ["Action", "Crime"]


def test_payload_uses_camel_case_and_hides_empty_score():
    payload = Title.from_tmdb({"id": 3, "title": "Up", "vote_average": 8}).to_payload()

    assert payload["mediaType"] == "movie"
    assert payload["voteAverage"] == 8.0
    assert payload["providerNames"] == []
    assert "recommendationScore" not in payload


def test_media_type_helpers():
    assert parse_media_type("tv") == "series"
    assert parse_media_type("Movie") == "movie"
    assert parse_media_type("episode") is None
    assert upstream_media_type("series") == "tv"
