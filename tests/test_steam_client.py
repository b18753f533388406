"""Tests for the Steam Web API client."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from app.config import Settings
from app.errors import IdentityResolutionError, LibraryFetchError
from app.services.steam import SteamClient

STEAM_ID = "76561197960287930"
FULL_WIDTH_ID = "".join(chr(ord(digit) + 0xFEE0) for digit in STEAM_ID)


def build_client(handler) -> tuple[SteamClient, httpx.AsyncClient]:
    settings = Settings(_env_file=None, STEAM_API_KEY="steam-key")
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://steam.example.com"
    )
    return SteamClient(settings, http_client), http_client


def _unexpected(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"Unexpected request to {request.url}")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (STEAM_ID, (STEAM_ID, "")),
        (f"https://steamcommunity.com/profiles/{STEAM_ID}/", (STEAM_ID, "")),
        ("https://steamcommunity.com/id/gabelogannewell/games?tab=all", (None, "gabelogannewell")),
        ("https://steamcommunity.com/profiles/notanumber", (None, "notanumber")),
        ("gabelogannewell", (None, "gabelogannewell")),
        (FULL_WIDTH_ID, (None, FULL_WIDTH_ID)),
        (f"https://steamcommunity.com/profiles/{FULL_WIDTH_ID}", (None, FULL_WIDTH_ID)),
    ],
)
def test_parse_identifier_handles_common_inputs(raw: str, expected) -> None:
    assert SteamClient.parse_identifier(raw) == expected


@pytest.mark.anyio
async def test_numeric_id_is_returned_without_network() -> None:
    client, http_client = build_client(_unexpected)
    async with http_client:
        assert await client.resolve_account_id(f" {STEAM_ID} ") == STEAM_ID


@pytest.mark.anyio
async def test_vanity_name_is_resolved_via_api() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"response": {"success": 1, "steamid": STEAM_ID}})

    client, http_client = build_client(handler)
    async with http_client:
        resolved = await client.resolve_account_id("https://steamcommunity.com/id/gaben/")

    assert resolved == STEAM_ID
    assert seen[0].url.path == "/ISteamUser/ResolveVanityURL/v1/"
    assert seen[0].url.params["vanityurl"] == "gaben"
    assert seen[0].url.params["key"] == "steam-key"


@pytest.mark.anyio
async def test_unresolvable_vanity_name_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"response": {"success": 42, "message": "No match"}})

    client, http_client = build_client(handler)
    async with http_client:
        with pytest.raises(IdentityResolutionError, match="Is your profile public"):
            await client.resolve_account_id("nobody-here")


@pytest.mark.anyio
async def test_non_ascii_digits_go_through_vanity_resolution() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"response": {"success": 42, "message": "No match"}})

    client, http_client = build_client(handler)
    async with http_client:
        with pytest.raises(IdentityResolutionError):
            await client.resolve_account_id(FULL_WIDTH_ID)

    assert [request.url.path for request in seen] == ["/ISteamUser/ResolveVanityURL/v1/"]


@pytest.mark.anyio
async def test_empty_identifier_raises() -> None:
    client, http_client = build_client(_unexpected)
    async with http_client:
        with pytest.raises(IdentityResolutionError, match="required"):
            await client.resolve_account_id("   ")


@pytest.mark.anyio
async def test_fetch_owned_titles_maps_games() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["include_appinfo"] == "true"
        assert request.url.params["steamid"] == STEAM_ID
        games: list[dict[str, Any]] = [
            {"appid": 220, "name": "Half-Life 2", "playtime_forever": 754},
            {"appid": 400, "name": "Portal"},
            {"appid": None, "name": "Broken"},
        ]
        return httpx.Response(200, json={"response": {"game_count": 3, "games": games}})

    client, http_client = build_client(handler)
    async with http_client:
        titles = await client.fetch_owned_titles(STEAM_ID)

    assert [(t.external_app_id, t.name, t.owned_playtime_minutes) for t in titles] == [
        (220, "Half-Life 2", 754),
        (400, "Portal", 0),
    ]


@pytest.mark.anyio
async def test_fetch_owned_titles_returns_empty_library() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"response": {"game_count": 0}})

    client, http_client = build_client(handler)
    async with http_client:
        assert await client.fetch_owned_titles(STEAM_ID) == []


@pytest.mark.anyio
async def test_private_profile_raises_library_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"response": {}})

    client, http_client = build_client(handler)
    async with http_client:
        with pytest.raises(LibraryFetchError, match="private"):
            await client.fetch_owned_titles(STEAM_ID)


@pytest.mark.anyio
async def test_transport_error_raises_library_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    client, http_client = build_client(handler)
    async with http_client:
        with pytest.raises(LibraryFetchError):
            await client.fetch_owned_titles(STEAM_ID)
