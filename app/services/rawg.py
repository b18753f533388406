"""Helper client for resolving owned titles against the RAWG catalog."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

import httpx

from ..config import Settings
from ..errors import ConfigurationError
from ..models import CatalogMatch, StageResult
from ..utils import coerce_int

logger = logging.getLogger(__name__)

COVER_FALLBACK_URL = "https://media.rawg.io/media/games/{slug}.jpg"


class RawgClient:
    """Search RAWG for the best match of each title, a bounded number at a time."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._semaphore = asyncio.Semaphore(settings.rawg_concurrency)

    async def search(self, title: str) -> CatalogMatch | None:
        """Return the first search result for ``title`` or ``None``."""

        normalized = (title or "").strip()
        if not normalized:
            return None

        params = {
            "key": self._settings.rawg_api_key,
            "search": normalized,
            "page_size": 1,
        }
        try:
            async with self._semaphore:
                response = await self._client.get("/games", params=params)
        except httpx.HTTPError as exc:
            logger.warning("RAWG search failed for %s: %s", normalized, exc)
            return None

        if response.status_code == 401:
            raise ConfigurationError("Invalid RAWG API Key.")
        if response.status_code >= 400:
            logger.warning(
                "RAWG search for %s failed with status %s",
                normalized,
                response.status_code,
            )
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Unexpected non-JSON RAWG response for %s", normalized)
            return None

        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list) or not results:
            return None
        best = results[0]
        if not isinstance(best, dict):
            return None
        return self._to_match(best, fallback_name=normalized)

    async def match_titles(self, titles: Iterable[str]) -> StageResult[str, CatalogMatch]:
        """Look up every distinct title concurrently.

        Titles without a result land in ``gaps``. A rejected API key aborts the
        whole stage.
        """

        distinct = list(dict.fromkeys(title for title in titles if title))
        if not distinct:
            return StageResult()

        tasks = [asyncio.create_task(self.search(title)) for title in distinct]
        try:
            matches = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        result: StageResult[str, CatalogMatch] = StageResult()
        for title, match in zip(distinct, matches):
            if match is None:
                result.gaps.append(title)
            else:
                result.data[title] = match
        logger.info(
            "RAWG matched %s of %s titles", len(result.data), len(distinct)
        )
        return result

    @staticmethod
    def _to_match(payload: dict[str, Any], *, fallback_name: str) -> CatalogMatch:
        genres = [
            str(genre.get("name"))
            for genre in payload.get("genres") or []
            if isinstance(genre, dict) and genre.get("name")
        ]
        cover = payload.get("background_image")
        if not (isinstance(cover, str) and cover.startswith("http")):
            slug = str(payload.get("slug") or "").strip()
            cover = COVER_FALLBACK_URL.format(slug=slug) if slug else None
        release_date = payload.get("released")
        return CatalogMatch(
            canonical_name=str(payload.get("name") or fallback_name),
            cover_image_url=cover,
            genres=genres,
            release_date=str(release_date) if release_date else None,
            estimated_playtime_hours=coerce_int(payload.get("playtime")) or None,
        )
