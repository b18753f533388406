"""High level orchestration for Steam library imports."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Iterable, Sequence

from ..config import Settings
from ..db_models import GameRecord
from ..errors import ImportTimeoutError
from ..models import (
    DEFAULT_LIST,
    PC_PLATFORM,
    CatalogMatch,
    CompatibilityRefreshResult,
    CompatibilityTier,
    EnrichedTitle,
    ImportMode,
    ImportRequest,
    ImportResult,
    OwnedTitle,
)
from .igdb import IGDBClient
from .library_store import LibraryStore
from .protondb import ProtonDBClient
from .rawg import RawgClient
from .steam import SteamClient

logger = logging.getLogger(__name__)


def reconcile_owned_titles(
    owned: Sequence[OwnedTitle],
    mode: ImportMode,
    existing_app_ids: Iterable[int] = (),
) -> list[OwnedTitle]:
    """Return the owned titles that should proceed to enrichment.

    In NEW mode titles whose app id is already stored are skipped. FULL mode
    keeps everything because the stored PC records are replaced on commit.
    Repeated app ids within one Steam response are collapsed in both modes.
    """

    skip = set(existing_app_ids) if mode is ImportMode.NEW else set()
    kept: list[OwnedTitle] = []
    for title in owned:
        if title.external_app_id in skip:
            continue
        skip.add(title.external_app_id)
        kept.append(title)
    return kept


def attach_matches(
    candidates: Sequence[OwnedTitle], matches: dict[str, CatalogMatch]
) -> list[EnrichedTitle]:
    return [
        EnrichedTitle(owned=title, match=matches[title.name])
        for title in candidates
        if title.name in matches
    ]


class LibraryImportService:
    """Coordinates Steam ingestion with RAWG, IGDB and ProtonDB enrichment."""

    def __init__(
        self,
        settings: Settings,
        steam_client: SteamClient,
        rawg_client: RawgClient,
        igdb_client: IGDBClient,
        protondb_client: ProtonDBClient,
        store: LibraryStore,
    ):
        self._settings = settings
        self._steam = steam_client
        self._rawg = rawg_client
        self._igdb = igdb_client
        self._protondb = protondb_client
        self._store = store

    @property
    def store(self) -> LibraryStore:
        return self._store

    async def import_library(
        self,
        user_id: str,
        request: ImportRequest,
        *,
        deadline: float | None = None,
    ) -> ImportResult:
        """Import the Steam library behind ``request`` into ``user_id``'s partition."""

        self._settings.require_import_credentials()
        timeout = deadline if deadline is not None else self._settings.import_timeout_seconds
        try:
            return await asyncio.wait_for(self._run_import(user_id, request), timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Import for user %s exceeded %.1fs", user_id, timeout)
            raise ImportTimeoutError(
                f"Import did not finish within {timeout:g} seconds."
            ) from exc

    async def _run_import(self, user_id: str, request: ImportRequest) -> ImportResult:
        logger.info(
            "Starting %s import for user %s from %s",
            request.mode.value,
            user_id,
            request.account_identifier,
        )
        steam_id = await self._steam.resolve_account_id(request.account_identifier)
        await self._store.record_steam_id(user_id, steam_id)
        preferences = await self._store.load_preferences(user_id)

        owned = await self._steam.fetch_owned_titles(steam_id)

        if request.mode is ImportMode.FULL:
            candidates = reconcile_owned_titles(owned, request.mode)
        else:
            existing = await self._store.existing_app_ids(user_id)
            candidates = reconcile_owned_titles(owned, request.mode, existing)
        logger.info(
            "%s of %s owned titles remain after reconciliation",
            len(candidates),
            len(owned),
        )

        if not candidates:
            if request.mode is ImportMode.FULL:
                await self._store.replace_platform(user_id, PC_PLATFORM, [])
            return ImportResult(message="No new games to import.")

        enriched = await self._enrich(
            candidates, check_compatibility=preferences.plays_on_steam_deck
        )
        return await self._commit(user_id, request.mode, candidates, enriched)

    async def _enrich(
        self, candidates: Sequence[OwnedTitle], *, check_compatibility: bool
    ) -> list[EnrichedTitle]:
        matches = await self._rawg.match_titles(title.name for title in candidates)
        enriched = attach_matches(candidates, matches.data)
        if not enriched:
            return enriched

        cross_refs = await self._igdb.resolve_ids(
            item.match.canonical_name for item in enriched
        )
        for item in enriched:
            item.cross_ref_id = cross_refs.data.get(item.match.canonical_name)

        game_ids = {item.cross_ref_id for item in enriched if item.cross_ref_id is not None}
        if game_ids:
            completion = await self._igdb.fetch_completion_times(game_ids)
            for item in enriched:
                if item.cross_ref_id is not None:
                    item.completion = completion.data.get(item.cross_ref_id)

        pc_titles = [item for item in enriched if item.platform == PC_PLATFORM]
        compatibility = await self._protondb.enrich(
            (item.owned.external_app_id for item in pc_titles),
            enabled=check_compatibility,
        )
        for item in pc_titles:
            item.compatibility = compatibility.data.get(
                item.owned.external_app_id, CompatibilityTier.UNKNOWN
            )
        return enriched

    async def _commit(
        self,
        user_id: str,
        mode: ImportMode,
        candidates: Sequence[OwnedTitle],
        enriched: Sequence[EnrichedTitle],
    ) -> ImportResult:
        now = datetime.utcnow()
        records = [self._build_record(user_id, item, now) for item in enriched]
        if mode is ImportMode.FULL:
            # Imported titles are all PC titles.
            imported = await self._store.replace_platform(user_id, PC_PLATFORM, records)
        else:
            imported = await self._store.create_many(records)
        failed = len(candidates) - imported
        logger.info(
            "Imported %s titles for user %s (%s without a catalog match)",
            imported,
            user_id,
            failed,
        )
        return ImportResult(imported_count=imported, failed_count=failed)

    @staticmethod
    def _build_record(user_id: str, item: EnrichedTitle, now: datetime) -> GameRecord:
        return GameRecord(
            user_id=user_id,
            title=item.match.canonical_name or item.owned.name,
            platform=item.platform,
            genres=list(item.match.genres),
            game_list=DEFAULT_LIST,
            image_url=item.match.cover_image_url,
            release_date=item.match.release_date,
            estimated_playtime=item.estimated_playtime,
            steam_app_id=item.owned.external_app_id,
            steam_deck_compat=item.compatibility.value,
            created_at=now,
            updated_at=now,
        )

    async def refresh_compatibility(self, user_id: str) -> CompatibilityRefreshResult:
        """Re-check ProtonDB for every stored PC title with a Steam app id.

        Failed lookups keep the stored tier; only changed tiers are written.
        """

        records = [
            record
            for record in await self._store.list_records(user_id, platform=PC_PLATFORM)
            if record.steam_app_id is not None
        ]
        if not records:
            return CompatibilityRefreshResult()

        tiers = await self._protondb.enrich(
            (record.steam_app_id for record in records), enabled=True
        )
        failed = set(tiers.gaps)
        updates: dict[int, str] = {}
        for record in records:
            if record.steam_app_id in failed:
                continue
            tier = tiers.data.get(record.steam_app_id, CompatibilityTier.UNKNOWN)
            if tier.value != record.steam_deck_compat:
                updates[record.id] = tier.value
        updated = await self._store.update_compatibility(updates)
        logger.info(
            "Refreshed Steam Deck compatibility for user %s: %s checked, %s updated",
            user_id,
            len(records),
            updated,
        )
        return CompatibilityRefreshResult(checked=len(records), updated=updated)
