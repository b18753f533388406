"""Per-user library partition backed by SQLAlchemy."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import GameRecord, UserPreferences, UserProfile
from ..models import PreferencesPayload

logger = logging.getLogger(__name__)


class LibraryStore:
    """Keyed store over the ``games``, ``profiles`` and ``preferences`` tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_records(
        self, user_id: str, *, platform: str | None = None
    ) -> list[GameRecord]:
        statement = select(GameRecord).where(GameRecord.user_id == user_id)
        if platform is not None:
            statement = statement.where(GameRecord.platform == platform)
        statement = statement.order_by(GameRecord.id)
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def existing_app_ids(self, user_id: str) -> set[int]:
        """Return every non-null Steam app id stored for ``user_id``."""

        statement = select(GameRecord.steam_app_id).where(
            GameRecord.user_id == user_id,
            GameRecord.steam_app_id.is_not(None),
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return {int(app_id) for app_id in result.scalars().all()}

    async def replace_platform(
        self, user_id: str, platform: str, records: Sequence[GameRecord]
    ) -> int:
        """Swap every record on ``platform`` for ``records`` in one transaction.

        The batched delete runs before the inserts. Nothing is removed if the
        transaction fails.
        """

        async with self._session_factory() as session:
            result = await session.execute(
                delete(GameRecord).where(
                    GameRecord.user_id == user_id,
                    GameRecord.platform == platform,
                )
            )
            session.add_all(list(records))
            await session.commit()
        deleted = result.rowcount or 0
        logger.info(
            "Replaced %s %s records with %s for user %s",
            deleted,
            platform,
            len(records),
            user_id,
        )
        return len(records)

    async def create_many(self, records: Sequence[GameRecord]) -> int:
        """Persist ``records`` in a single transaction."""

        if not records:
            return 0
        async with self._session_factory() as session:
            session.add_all(list(records))
            await session.commit()
        return len(records)

    async def update_compatibility(self, updates: Mapping[int, str]) -> int:
        """Apply new compatibility tiers keyed by record id in one transaction."""

        if not updates:
            return 0
        now = datetime.utcnow()
        async with self._session_factory() as session:
            for record_id, tier in updates.items():
                await session.execute(
                    update(GameRecord)
                    .where(GameRecord.id == record_id)
                    .values(steam_deck_compat=tier, updated_at=now)
                )
            await session.commit()
        return len(updates)

    async def load_preferences(self, user_id: str) -> PreferencesPayload:
        async with self._session_factory() as session:
            preferences = await session.get(UserPreferences, user_id)
            if preferences is None:
                return PreferencesPayload()
            return PreferencesPayload(
                platforms=list(preferences.platforms or []),
                favorite_platform=preferences.favorite_platform,
                plays_on_steam_deck=bool(preferences.plays_on_steam_deck),
                notify_discounts=bool(preferences.notify_discounts),
            )

    async def save_preferences(
        self, user_id: str, payload: PreferencesPayload
    ) -> PreferencesPayload:
        async with self._session_factory() as session:
            await self._ensure_profile(session, user_id)
            preferences = await session.get(UserPreferences, user_id)
            if preferences is None:
                preferences = UserPreferences(user_id=user_id)
                session.add(preferences)
            preferences.platforms = list(payload.platforms)
            preferences.favorite_platform = payload.favorite_platform
            preferences.plays_on_steam_deck = payload.plays_on_steam_deck
            preferences.notify_discounts = payload.notify_discounts
            await session.commit()
        return payload

    async def record_steam_id(self, user_id: str, steam_id: str) -> None:
        """Remember the account an import resolved to."""

        async with self._session_factory() as session:
            profile = await self._ensure_profile(session, user_id)
            profile.steam_id = steam_id
            await session.commit()

    async def get_profile(self, user_id: str) -> UserProfile | None:
        async with self._session_factory() as session:
            return await session.get(UserProfile, user_id)

    @staticmethod
    async def _ensure_profile(session: AsyncSession, user_id: str) -> UserProfile:
        profile = await session.get(UserProfile, user_id)
        if profile is None:
            profile = UserProfile(id=user_id)
            session.add(profile)
            await session.flush()
        return profile
