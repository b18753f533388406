"""Domain models shared by the import pipeline and the HTTP layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, Literal, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .utils import minutes_to_hours

K = TypeVar("K")
V = TypeVar("V")

PC_PLATFORM = "PC"
DEFAULT_LIST = "Backlog"


class ImportMode(str, Enum):
    """Reconciliation policy applied against the stored library."""

    NEW = "new"
    FULL = "full"


class CompatibilityTier(str, Enum):
    VERIFIED = "verified"
    PLAYABLE = "playable"
    UNSUPPORTED = "unsupported"
    BORKED = "borked"
    UNKNOWN = "unknown"


@dataclass(slots=True)
class OwnedTitle:
    """A title owned by the Steam account."""

    external_app_id: int
    name: str
    owned_playtime_minutes: int = 0


@dataclass(slots=True)
class CatalogMatch:
    """Top RAWG search result for an owned title."""

    canonical_name: str
    cover_image_url: str | None = None
    genres: list[str] = field(default_factory=list)
    release_date: str | None = None
    estimated_playtime_hours: int | None = None


@dataclass(slots=True)
class CompletionTime:
    """IGDB time-to-beat estimates in whole hours."""

    normally_hours: int | None = None
    completely_hours: int | None = None

    @property
    def best_estimate(self) -> int | None:
        if self.normally_hours is not None:
            return self.normally_hours
        return self.completely_hours


@dataclass(slots=True)
class StageResult(Generic[K, V]):
    """Outcome of a stage whose per-key failures are absorbed locally."""

    data: dict[K, V] = field(default_factory=dict)
    gaps: list[K] = field(default_factory=list)

    @property
    def status(self) -> Literal["complete", "partial"]:
        return "partial" if self.gaps else "complete"


@dataclass(slots=True)
class EnrichedTitle:
    """An owned title carrying whatever enrichment the stages produced."""

    owned: OwnedTitle
    match: CatalogMatch
    cross_ref_id: int | None = None
    completion: CompletionTime | None = None
    compatibility: CompatibilityTier = CompatibilityTier.UNKNOWN
    platform: str = PC_PLATFORM

    @property
    def estimated_playtime(self) -> int | None:
        """Completion time, then the RAWG hint, then Steam's own playtime."""

        if self.completion is not None and self.completion.best_estimate is not None:
            return self.completion.best_estimate
        if self.match.estimated_playtime_hours:
            return self.match.estimated_playtime_hours
        return minutes_to_hours(self.owned.owned_playtime_minutes)


class ImportRequest(BaseModel):
    """Payload accepted by the import endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    account_identifier: str = Field(
        validation_alias=AliasChoices(
            "account_identifier", "accountIdentifier", "steamId", "steam_id"
        ),
    )
    mode: ImportMode = Field(
        default=ImportMode.NEW,
        validation_alias=AliasChoices("mode", "importMode", "import_mode"),
    )

    @field_validator("account_identifier", mode="before")
    @classmethod
    def _strip_identifier(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: object) -> object:
        if value is None:
            return ImportMode.NEW
        if isinstance(value, str):
            return value.strip().lower() or ImportMode.NEW
        return value


class ImportResult(BaseModel):
    """Counts reported back to the caller once an import commits."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = "Import successful"
    imported_count: int = Field(default=0, serialization_alias="importedCount")
    failed_count: int = Field(default=0, serialization_alias="failedCount")

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


class CompatibilityRefreshResult(BaseModel):
    checked: int = 0
    updated: int = 0


class LibraryEntry(BaseModel):
    """Public view of a stored library record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    platform: str
    genres: list[str] = Field(default_factory=list)
    game_list: str = Field(serialization_alias="list")
    image_url: str | None = Field(default=None, serialization_alias="imageUrl")
    release_date: str | None = Field(default=None, serialization_alias="releaseDate")
    estimated_playtime: int | None = Field(
        default=None, serialization_alias="estimatedPlaytime"
    )
    steam_app_id: int | None = Field(default=None, serialization_alias="steamAppId")
    steam_deck_compat: CompatibilityTier | None = Field(
        default=None, serialization_alias="steamDeckCompat"
    )
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")


class PreferencesPayload(BaseModel):
    """Platform preferences consumed at the start of an import."""

    model_config = ConfigDict(populate_by_name=True)

    platforms: list[str] = Field(default_factory=list)
    favorite_platform: str | None = Field(
        default=None,
        validation_alias=AliasChoices("favorite_platform", "favoritePlatform"),
        serialization_alias="favoritePlatform",
    )
    plays_on_steam_deck: bool = Field(
        default=False,
        validation_alias=AliasChoices("plays_on_steam_deck", "playsOnSteamDeck"),
        serialization_alias="playsOnSteamDeck",
    )
    notify_discounts: bool = Field(
        default=False,
        validation_alias=AliasChoices("notify_discounts", "notifyDiscounts"),
        serialization_alias="notifyDiscounts",
    )
