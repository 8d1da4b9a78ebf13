from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, inspect, text

from app.database import Database


def _initialise_legacy_schema(database_path: str) -> None:
    """Create a legacy preferences table holding only the favourite genre."""

    engine = create_engine(f"sqlite:///{database_path}")
    try:
        with engine.begin() as connection:
            connection.execute(
                text("CREATE TABLE users (id INTEGER PRIMARY KEY, name VARCHAR(120))")
            )
            connection.execute(
                text(
                    """
                    CREATE TABLE preferences (
                        user_id INTEGER PRIMARY KEY REFERENCES users(id),
                        favorite_genre VARCHAR(64)
                    )
                    """
                )
            )
            connection.execute(text("INSERT INTO users (id, name) VALUES (1, 'Legacy')"))
            connection.execute(
                text("INSERT INTO preferences (user_id, favorite_genre) VALUES (1, 'Drama')")
            )
    finally:
        engine.dispose()


async def _create_and_dispose(database: Database) -> None:
    await database.create_all()
    await database.dispose()


def test_create_all_adds_missing_preference_columns(tmp_path) -> None:
    """Schema migrations should backfill columns added after the first release."""

    database_path = tmp_path / "legacy.db"
    _initialise_legacy_schema(str(database_path))

    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(_create_and_dispose(database))

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        with inspector_engine.connect() as connection:
            inspector = inspect(connection)
            columns = {column["name"] for column in inspector.get_columns("preferences")}
            row = connection.execute(
                text("SELECT favorite_genre, theme, selected_platforms FROM preferences")
            ).one()
            tables = set(inspector.get_table_names())
    finally:
        inspector_engine.dispose()

    assert {"theme", "selected_platforms", "updated_at"} <= columns
    assert row.favorite_genre == "Drama"
    assert row.theme == "dark"
    assert row.selected_platforms == "[]"
    assert "search_history" in tables


def test_create_all_is_idempotent(tmp_path) -> None:
    database_path = tmp_path / "fresh.db"

    async def _run() -> None:
        database = Database(f"sqlite+aiosqlite:///{database_path}")
        await database.create_all()
        await database.create_all()
        await database.dispose()

    asyncio.run(_run())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        with inspector_engine.connect() as connection:
            tables = set(inspect(connection).get_table_names())
    finally:
        inspector_engine.dispose()

    assert {"users", "preferences", "search_history"} <= tables
