"""Integration helpers for the IGDB multiquery API."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Iterable, Sequence

import httpx

from ..config import Settings
from ..errors import CompletionTimeError, ConfigurationError, CrossReferenceError
from ..models import CompletionTime, StageResult
from ..utils import chunked, coerce_int, seconds_to_hours, unique_query_names

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

SEARCH_QUERY_TEMPLATE = (
    'query games "{name}" {{\n'
    '  search "{title}";\n'
    "  fields id, name;\n"
    "  limit 1;\n"
    "}};"
)
TIME_TO_BEAT_QUERY_TEMPLATE = (
    'query game_time_to_beats "{name}" {{\n'
    "  fields game_id, normally, completely;\n"
    "  where game_id = {game_id};\n"
    "}};"
)

# Refresh the Twitch token this many seconds before it expires.
TOKEN_EXPIRY_MARGIN = 60


class IGDBClient:
    """Client responsible for talking to IGDB through paced multiquery batches."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        *,
        sleep: Sleep = asyncio.sleep,
    ):
        self._settings = settings
        self._client = http_client
        self._sleep = sleep
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    async def resolve_ids(self, titles: Iterable[str]) -> StageResult[str, int]:
        """Map each canonical title to the id of IGDB's top search hit."""

        distinct = list(dict.fromkeys(title for title in titles if title))
        result: StageResult[str, int] = StageResult()

        async def _run_chunk(chunk: list[str]) -> None:
            names = unique_query_names("search", chunk)
            body = "\n".join(
                SEARCH_QUERY_TEMPLATE.format(name=name, title=_escape(title))
                for name, title in zip(names, chunk)
            )
            entries = await self._multiquery(body, error_cls=CrossReferenceError)
            for name, title in zip(names, chunk):
                hit = _first_result(entries.get(name))
                game_id = coerce_int(hit.get("id")) if hit else None
                if game_id is None:
                    result.gaps.append(title)
                else:
                    result.data[title] = game_id

        await self._run_paced(distinct, self._settings.igdb_search_chunk_size, _run_chunk)
        logger.info(
            "IGDB resolved %s of %s titles", len(result.data), len(distinct)
        )
        return result

    async def fetch_completion_times(
        self, game_ids: Iterable[int]
    ) -> StageResult[int, CompletionTime]:
        """Fetch time-to-beat estimates for each distinct IGDB id."""

        distinct = sorted(set(game_ids))
        result: StageResult[int, CompletionTime] = StageResult()

        async def _run_chunk(chunk: list[int]) -> None:
            body = "\n".join(
                TIME_TO_BEAT_QUERY_TEMPLATE.format(name=f"ttb_{game_id}", game_id=game_id)
                for game_id in chunk
            )
            entries = await self._multiquery(body, error_cls=CompletionTimeError)
            for game_id in chunk:
                hit = _first_result(entries.get(f"ttb_{game_id}"))
                if not hit:
                    result.gaps.append(game_id)
                    continue
                result.data[game_id] = CompletionTime(
                    normally_hours=seconds_to_hours(hit.get("normally")),
                    completely_hours=seconds_to_hours(hit.get("completely")),
                )

        await self._run_paced(
            distinct, self._settings.igdb_time_to_beat_chunk_size, _run_chunk
        )
        logger.info(
            "IGDB returned completion times for %s of %s games",
            len(result.data),
            len(distinct),
        )
        return result

    async def _run_paced(
        self,
        items: Sequence[Any],
        size: int,
        handler: Callable[[list[Any]], Awaitable[None]],
    ) -> None:
        """Run ``handler`` over consecutive chunks, pausing between each pair."""

        chunks = list(chunked(items, size))
        delay = self._settings.igdb_multiquery_delay_seconds
        for index, chunk in enumerate(chunks):
            logger.debug("IGDB multiquery chunk %s/%s", index + 1, len(chunks))
            await handler(chunk)
            if index < len(chunks) - 1:
                await self._sleep(delay)

    async def _multiquery(
        self, body: str, *, error_cls: type[CrossReferenceError] | type[CompletionTimeError]
    ) -> dict[str, list[Any]]:
        """POST one multiquery body and index the results by query name."""

        try:
            headers = await self._headers()
        except (httpx.HTTPError, ValueError) as exc:
            raise error_cls(f"Could not obtain an IGDB access token: {exc}") from exc
        try:
            response = await self._client.post("/multiquery", content=body, headers=headers)
        except httpx.HTTPError as exc:
            raise error_cls(f"IGDB multiquery request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "IGDB multiquery failed with status %s: %s",
                response.status_code,
                response.text,
            )
            raise error_cls(
                f"IGDB multiquery failed. Status: {response.status_code}. "
                f"Body: {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise error_cls("IGDB multiquery returned a non-JSON body") from exc
        if not isinstance(payload, list):
            raise error_cls("IGDB multiquery returned an unexpected structure")

        indexed: dict[str, list[Any]] = {}
        for entry in payload:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name")
            rows = entry.get("result")
            if isinstance(name, str) and isinstance(rows, list):
                indexed[name] = rows
        return indexed

    async def _headers(self) -> dict[str, str]:
        token = await self._access_token()
        return {
            "Client-ID": self._settings.igdb_client_id or "",
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    async def _access_token(self) -> str:
        """Return a cached Twitch app token, requesting a new one when stale."""

        async with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            client_id = self._settings.igdb_client_id
            client_secret = self._settings.igdb_client_secret
            if not (client_id and client_secret):
                raise ConfigurationError("IGDB client credentials are not configured.")

            response = await self._client.post(
                str(self._settings.twitch_token_url),
                params={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "grant_type": "client_credentials",
                },
            )
            response.raise_for_status()
            payload = response.json()
            token = payload.get("access_token") if isinstance(payload, dict) else None
            if not token:
                raise ValueError("missing access token in Twitch response")

            expires_in = coerce_int(payload.get("expires_in"), default=3_600) or 3_600
            self._token = str(token)
            self._token_expires_at = time.monotonic() + max(
                expires_in - TOKEN_EXPIRY_MARGIN, 0
            )
            return self._token


def _escape(title: str) -> str:
    return title.replace("\\", "\\\\").replace('"', '\\"')


def _first_result(rows: list[Any] | None) -> dict[str, Any] | None:
    if not rows:
        return None
    first = rows[0]
    return first if isinstance(first, dict) else None
