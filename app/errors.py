"""Error kinds that abort a library import."""

from __future__ import annotations


class LibraryImportError(RuntimeError):
    """Base class for failures that abort an import run."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConfigurationError(LibraryImportError):
    """An upstream credential is missing or was rejected."""


class IdentityResolutionError(LibraryImportError):
    """The supplied Steam identifier could not be turned into a SteamID64."""


class LibraryFetchError(LibraryImportError):
    """The owned-games list could not be retrieved."""


class CrossReferenceError(LibraryImportError):
    """An IGDB search chunk failed."""


class CompletionTimeError(LibraryImportError):
    """An IGDB time-to-beat chunk failed."""


class ImportTimeoutError(LibraryImportError):
    """The import exceeded its deadline."""
