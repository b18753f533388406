"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.config import Settings
from app.errors import ConfigurationError

CREDENTIALS = {
    "STEAM_API_KEY": "steam-key",
    "RAWG_API_KEY": "rawg-key",
    "IGDB_CLIENT_ID": "igdb-id",
    "IGDB_CLIENT_SECRET": "igdb-secret",
}


def test_defaults_follow_upstream_limits() -> None:
    """Chunking and pacing defaults mirror IGDB's published limits."""

    settings = Settings(_env_file=None, **CREDENTIALS)

    assert settings.igdb_search_chunk_size == 10
    assert settings.igdb_time_to_beat_chunk_size == 10
    assert settings.igdb_multiquery_delay_ms == 1_000
    assert settings.igdb_multiquery_delay_seconds == 1.0
    assert settings.rawg_concurrency == 10


def test_require_credentials_passes_when_configured() -> None:
    settings = Settings(_env_file=None, **CREDENTIALS)

    settings.require_import_credentials()


def test_require_credentials_lists_every_missing_key(monkeypatch) -> None:
    """Missing keys are reported together so operators can fix them at once."""

    for name in CREDENTIALS:
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None, STEAM_API_KEY="steam-key", RAWG_API_KEY=" ")

    assert settings.missing_import_credentials() == [
        "RAWG_API_KEY",
        "IGDB_CLIENT_ID",
        "IGDB_CLIENT_SECRET",
    ]
    with pytest.raises(ConfigurationError, match="RAWG_API_KEY"):
        settings.require_import_credentials()


def test_chunk_size_cannot_exceed_multiquery_limit() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, IGDB_SEARCH_CHUNK_SIZE=11)
