"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Backlogflow", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    steam_api_key: str | None = Field(default=None, alias="STEAM_API_KEY")
    rawg_api_key: str | None = Field(default=None, alias="RAWG_API_KEY")
    igdb_client_id: str | None = Field(default=None, alias="IGDB_CLIENT_ID")
    igdb_client_secret: str | None = Field(
        default=None, alias="IGDB_CLIENT_SECRET"
    )

    steam_api_url: HttpUrl = Field(
        default="https://api.steampowered.com", alias="STEAM_API_URL"
    )
    rawg_api_url: HttpUrl = Field(
        default="https://api.rawg.io/api", alias="RAWG_API_URL"
    )
    igdb_api_url: HttpUrl = Field(
        default="https://api.igdb.com/v4", alias="IGDB_API_URL"
    )
    twitch_token_url: HttpUrl = Field(
        default="https://id.twitch.tv/oauth2/token", alias="TWITCH_TOKEN_URL"
    )
    protondb_api_url: HttpUrl = Field(
        default="https://www.protondb.com/api/v1", alias="PROTONDB_API_URL"
    )

    rawg_concurrency: int = Field(default=10, alias="RAWG_CONCURRENCY", ge=1, le=50)
    protondb_concurrency: int = Field(
        default=10, alias="PROTONDB_CONCURRENCY", ge=1, le=50
    )
    # IGDB caps a multiquery request at ten sub-queries.
    igdb_search_chunk_size: int = Field(
        default=10, alias="IGDB_SEARCH_CHUNK_SIZE", ge=1, le=10
    )
    igdb_time_to_beat_chunk_size: int = Field(
        default=10, alias="IGDB_TTB_CHUNK_SIZE", ge=1, le=10
    )
    igdb_multiquery_delay_ms: int = Field(
        default=1_000, alias="IGDB_MULTIQUERY_DELAY_MS", ge=0
    )
    import_timeout_seconds: float = Field(
        default=600.0, alias="IMPORT_TIMEOUT", ge=1
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./backlogflow.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @property
    def igdb_multiquery_delay_seconds(self) -> float:
        return self.igdb_multiquery_delay_ms / 1000

    def missing_import_credentials(self) -> list[str]:
        """Return the environment names of every unset upstream credential."""

        required = {
            "STEAM_API_KEY": self.steam_api_key,
            "RAWG_API_KEY": self.rawg_api_key,
            "IGDB_CLIENT_ID": self.igdb_client_id,
            "IGDB_CLIENT_SECRET": self.igdb_client_secret,
        }
        return [name for name, value in required.items() if not (value or "").strip()]

    def require_import_credentials(self) -> None:
        """Fail fast when an upstream used by the import is not configured."""

        missing = self.missing_import_credentials()
        if missing:
            raise ConfigurationError(
                f"{', '.join(missing)} not configured on the server."
            )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
