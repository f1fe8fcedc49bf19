"""Coercions for values read from scraped pages and from the JSON metadata cache."""

from __future__ import annotations

import re
from datetime import datetime, timezone

_INT_RE = re.compile(r"-?\d+")


def as_str(value: object) -> str:
    return "" if value is None else str(value).strip()


def parse_int_text(value: object) -> int | None:
    """
    Integer from an int, an integral float or a plain decimal string; None otherwise.

    Booleans are rejected even though they are ints.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        return int(value.strip())
    return None


def str_list(values: object) -> list[str]:
    # Order and duplicates are kept; anything but a real list is treated as empty.
    if not isinstance(values, list):
        return []
    return [str(v) for v in values if v is not None]


def epoch_seconds(dt: datetime) -> int:
    """Unix seconds for `dt`; naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())
