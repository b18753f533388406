"""Utility helpers for the Backlogflow service."""

from __future__ import annotations

import math
import re
from typing import Any, Iterator, Sequence, TypeVar

T = TypeVar("T")

QUERY_NAME_RE = re.compile(r"[^a-zA-Z0-9]")
STEAM_ID64_RE = re.compile(r"[0-9]{17}")


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of ``items`` holding at most ``size`` entries."""

    if size < 1:
        raise ValueError("Chunk size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


def sanitize_query_name(title: str) -> str:
    """Strip everything but ASCII letters and digits from ``title``."""

    return QUERY_NAME_RE.sub("", title)


def unique_query_names(prefix: str, titles: Sequence[str]) -> list[str]:
    """Return one multiquery name per title, suffixing sanitized collisions."""

    names: list[str] = []
    used: set[str] = set()
    for index, title in enumerate(titles):
        base = sanitize_query_name(title) or f"q{index}"
        candidate = f"{prefix}_{base}"
        suffix = 1
        while candidate in used:
            candidate = f"{prefix}_{base}_{suffix}"
            suffix += 1
        used.add(candidate)
        names.append(candidate)
    return names


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def seconds_to_hours(value: Any) -> int | None:
    """Convert an IGDB duration in seconds to whole hours; 0 means no data."""

    seconds = coerce_int(value)
    if not seconds:
        return None
    return round_half_up(seconds / 3600)


def minutes_to_hours(value: Any) -> int | None:
    minutes = coerce_int(value)
    if not minutes:
        return None
    hours = round_half_up(minutes / 60)
    return hours or None


def coerce_int(value: Any, *, default: int | None = None) -> int | None:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def is_steam_id64(value: str) -> bool:
    return bool(STEAM_ID64_RE.fullmatch(value))
