"""Database utilities for the StreamHub service."""

from __future__ import annotations

from sqlalchemy import MetaData, inspect, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base with consistent naming conventions."""

    metadata = MetaData()


class Database:
    """Thin wrapper managing the SQLAlchemy async engine and sessions."""

    def __init__(self, database_url: str):
        self._engine: AsyncEngine = create_async_engine(database_url, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    async def create_all(self) -> None:
        """Create database tables if they do not yet exist."""

        # Registers the mapped tables on ``Base.metadata``.
        from . import db_models  # noqa: F401

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
            await connection.run_sync(self._apply_schema_migrations)

    @staticmethod
    def _apply_schema_migrations(sync_connection) -> None:
        """Ensure columns added after the first release exist on old databases."""

        inspector = inspect(sync_connection)
        if "preferences" not in inspector.get_table_names():
            return

        existing_columns = {
            column["name"] for column in inspector.get_columns("preferences")
        }

        def _ensure_column(name: str, ddl: str, init_sql: str | None = None) -> None:
            if name in existing_columns:
                return
            sync_connection.execute(text(ddl))
            if init_sql:
                sync_connection.execute(text(init_sql))
            existing_columns.add(name)

        _ensure_column(
            "theme",
            "ALTER TABLE preferences ADD COLUMN theme VARCHAR(32) DEFAULT 'dark'",
            "UPDATE preferences SET theme = 'dark' WHERE theme IS NULL",
        )
        _ensure_column(
            "selected_platforms",
            "ALTER TABLE preferences ADD COLUMN selected_platforms JSON",
            "UPDATE preferences SET selected_platforms = '[]' WHERE selected_platforms IS NULL",
        )
        _ensure_column(
            "updated_at",
            "ALTER TABLE preferences ADD COLUMN updated_at DATETIME",
        )

    async def dispose(self) -> None:
        """Dispose of the underlying database engine."""

        await self._engine.dispose()
