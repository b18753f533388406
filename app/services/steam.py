"""Utilities for communicating with the Steam Web API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..errors import IdentityResolutionError, LibraryFetchError
from ..models import OwnedTitle
from ..utils import coerce_int, is_steam_id64

logger = logging.getLogger(__name__)

VANITY_URL_MARKER = "steamcommunity.com/id/"
PROFILE_URL_MARKER = "steamcommunity.com/profiles/"


class SteamClient:
    """Thin wrapper around the two Steam endpoints an import needs."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    @staticmethod
    def parse_identifier(identifier: str) -> tuple[str | None, str]:
        """Split user input into ``(steam_id64, vanity_name)``.

        Exactly one side is meaningful: a SteamID64 found directly in the input
        or a profile URL, otherwise the vanity name that still needs resolving.
        """

        value = (identifier or "").strip()
        if is_steam_id64(value):
            return value, ""

        if PROFILE_URL_MARKER in value:
            segment = _trailing_segment(value, PROFILE_URL_MARKER)
            if is_steam_id64(segment):
                return segment, ""
            return None, segment
        if VANITY_URL_MARKER in value:
            return None, _trailing_segment(value, VANITY_URL_MARKER)
        return None, value

    async def resolve_account_id(self, identifier: str) -> str:
        """Return the SteamID64 behind a numeric id, profile URL or vanity name."""

        if not (identifier or "").strip():
            raise IdentityResolutionError("Steam ID or Vanity URL is required.")

        steam_id, vanity_name = self.parse_identifier(identifier)
        if steam_id:
            return steam_id

        failure = (
            f"Could not resolve Steam vanity URL: {identifier.strip()}. "
            "Is your profile public and the URL correct?"
        )
        if not vanity_name:
            raise IdentityResolutionError(failure)

        try:
            response = await self._client.get(
                "/ISteamUser/ResolveVanityURL/v1/",
                params={"key": self._settings.steam_api_key, "vanityurl": vanity_name},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Steam vanity lookup failed for %s: %s", vanity_name, exc)
            raise IdentityResolutionError(failure) from exc

        body = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(body, dict) or coerce_int(body.get("success")) != 1:
            logger.info("Steam could not resolve vanity name %s: %s", vanity_name, body)
            raise IdentityResolutionError(failure)

        resolved = str(body.get("steamid") or "").strip()
        if not is_steam_id64(resolved):
            raise IdentityResolutionError(failure)
        return resolved

    async def fetch_owned_titles(self, steam_id: str) -> list[OwnedTitle]:
        """Fetch every title the account owns, including app names."""

        try:
            response = await self._client.get(
                "/IPlayerService/GetOwnedGames/v1/",
                params={
                    "key": self._settings.steam_api_key,
                    "steamid": steam_id,
                    "format": "json",
                    "include_appinfo": "true",
                },
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch owned games for %s: %s", steam_id, exc)
            raise LibraryFetchError(
                f"Could not fetch owned games from Steam: {exc}"
            ) from exc

        body = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(body, dict) or not body:
            raise LibraryFetchError(
                "Could not fetch owned games. The Steam ID may be incorrect "
                "or the user's profile is private."
            )

        games = body.get("games")
        if not isinstance(games, list):
            return []

        titles: list[OwnedTitle] = []
        for entry in games:
            title = self._parse_owned_game(entry)
            if title is not None:
                titles.append(title)
        logger.info("Steam account %s owns %s titles", steam_id, len(titles))
        return titles

    @staticmethod
    def _parse_owned_game(entry: Any) -> OwnedTitle | None:
        if not isinstance(entry, dict):
            return None
        app_id = coerce_int(entry.get("appid"))
        if app_id is None:
            return None
        name = str(entry.get("name") or "").strip()
        if not name:
            return None
        return OwnedTitle(
            external_app_id=app_id,
            name=name,
            owned_playtime_minutes=coerce_int(entry.get("playtime_forever"), default=0) or 0,
        )


def _trailing_segment(value: str, marker: str) -> str:
    remainder = value[value.index(marker) + len(marker) :]
    return remainder.split("/", 1)[0].split("?", 1)[0].strip()
