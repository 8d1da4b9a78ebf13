"""Preferences and search-history persistence for the single service user."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..db_models import PreferencesRecord, SearchHistoryRecord, User
from ..models import Preferences, PreferencesUpdate, SearchHistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = 1
DEFAULT_USER_NAME = "StreamHub User"
RECENT_SEARCH_LIMIT = 10


class UserService:
    """Reads and writes user state through an injected session factory."""

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self._settings = settings
        self._session_factory = session_factory

    async def get_preferences(self, user_id: int = DEFAULT_USER_ID) -> Preferences:
        """Return the user's preferences, creating defaults on first read."""

        async with self._session_factory() as session:
            record = await self._ensure_preferences(session, user_id)
            await session.commit()
            return self._to_preferences(record)

    async def update_preferences(
        self, update: PreferencesUpdate, user_id: int = DEFAULT_USER_ID
    ) -> Preferences:
        """Apply the supplied, non-empty fields and return the stored result."""

        async with self._session_factory() as session:
            record = await self._ensure_preferences(session, user_id)
            if update.favorite_genre:
                record.favorite_genre = update.favorite_genre
            if update.theme:
                record.theme = update.theme
            if update.selected_platforms is not None:
                record.selected_platforms = list(update.selected_platforms)
            record.updated_at = datetime.utcnow()
            await session.commit()
            logger.info("Updated preferences for user %s", user_id)
            return self._to_preferences(record)

    async def add_search_history(self, query: str, user_id: int = DEFAULT_USER_ID) -> None:
        async with self._session_factory() as session:
            await self._ensure_user(session, user_id)
            session.add(
                SearchHistoryRecord(
                    user_id=user_id, query=query, created_at=datetime.utcnow()
                )
            )
            await session.commit()

    async def recent_searches(
        self, user_id: int = DEFAULT_USER_ID, *, limit: int = RECENT_SEARCH_LIMIT
    ) -> list[SearchHistoryEntry]:
        """Return the newest searches first."""

        async with self._session_factory() as session:
            stmt = (
                select(SearchHistoryRecord)
                .where(SearchHistoryRecord.user_id == user_id)
                .order_by(SearchHistoryRecord.id.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return [
                SearchHistoryEntry(query=row.query, created_at=row.created_at)
                for row in result.scalars().all()
            ]

    async def _ensure_user(self, session: AsyncSession, user_id: int) -> User:
        user = await session.get(User, user_id)
        if user is None:
            user = User(id=user_id, name=DEFAULT_USER_NAME)
            session.add(user)
            await session.flush()
        return user

    async def _ensure_preferences(
        self, session: AsyncSession, user_id: int
    ) -> PreferencesRecord:
        record = await session.get(PreferencesRecord, user_id)
        if record is not None:
            return record
        await self._ensure_user(session, user_id)
        record = PreferencesRecord(
            user_id=user_id,
            favorite_genre=self._settings.default_favorite_genre,
            theme=self._settings.default_theme,
            selected_platforms=list(self._settings.default_selected_platforms),
            updated_at=datetime.utcnow(),
        )
        session.add(record)
        await session.flush()
        logger.info("Created default preferences for user %s", user_id)
        return record

    @staticmethod
    def _to_preferences(record: PreferencesRecord) -> Preferences:
        return Preferences(
            user_id=record.user_id,
            favorite_genre=record.favorite_genre or "Action",
            theme=record.theme or "dark",
            selected_platforms=list(record.selected_platforms or []),
        )
