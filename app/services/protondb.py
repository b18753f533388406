"""Steam Deck compatibility lookups against ProtonDB summaries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

import httpx

from ..config import Settings
from ..models import CompatibilityTier, StageResult

logger = logging.getLogger(__name__)

TIER_MAP: dict[str, CompatibilityTier] = {
    "native": CompatibilityTier.VERIFIED,
    "platinum": CompatibilityTier.VERIFIED,
    "gold": CompatibilityTier.PLAYABLE,
    "silver": CompatibilityTier.UNSUPPORTED,
    "bronze": CompatibilityTier.UNSUPPORTED,
    "borked": CompatibilityTier.BORKED,
}


def map_tier(value: Any) -> CompatibilityTier:
    """Translate a ProtonDB tier string; anything unrecognised is ``unknown``."""

    if not isinstance(value, str):
        return CompatibilityTier.UNKNOWN
    return TIER_MAP.get(value.strip().lower(), CompatibilityTier.UNKNOWN)


class ProtonDBClient:
    """Per-app compatibility lookups; ProtonDB offers no batch endpoint."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._semaphore = asyncio.Semaphore(settings.protondb_concurrency)

    async def lookup(self, app_id: int) -> CompatibilityTier | None:
        """Return the mapped tier, or ``None`` when the lookup itself failed."""

        try:
            async with self._semaphore:
                response = await self._client.get(f"/reports/summaries/{app_id}.json")
            if response.status_code == 404:
                # No reports filed for this app yet.
                logger.debug("ProtonDB has no summary for app %s", app_id)
                return None
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("ProtonDB lookup failed for app %s: %s", app_id, exc)
            return None
        if not isinstance(payload, dict):
            return CompatibilityTier.UNKNOWN
        return map_tier(payload.get("tier"))

    async def enrich(
        self, app_ids: Iterable[int], *, enabled: bool
    ) -> StageResult[int, CompatibilityTier]:
        """Resolve a tier for every app id.

        With ``enabled`` off every tier is ``unknown`` and nothing is requested.
        Failed lookups degrade to ``unknown`` and are listed in ``gaps``.
        """

        distinct = list(dict.fromkeys(app_ids))
        result: StageResult[int, CompatibilityTier] = StageResult()
        if not enabled:
            result.data = {app_id: CompatibilityTier.UNKNOWN for app_id in distinct}
            return result
        if not distinct:
            return result

        tiers = await asyncio.gather(*(self.lookup(app_id) for app_id in distinct))
        for app_id, tier in zip(distinct, tiers):
            if tier is None:
                result.gaps.append(app_id)
                tier = CompatibilityTier.UNKNOWN
            result.data[app_id] = tier
        return result
