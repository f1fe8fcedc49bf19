from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .clients.parse import as_str, parse_int_text, str_list
from .config import STORE


class IdentifierKind(str, Enum):
    VANITY = "vanity"
    DIRECT = "direct"


@dataclass(frozen=True)
class ResolvedIdentifier:
    identifier: str
    kind: IdentifierKind

    @property
    def is_vanity(self) -> bool:
        return self.kind is IdentifierKind.VANITY


@dataclass(frozen=True)
class Profile:
    steam_id: str = ""
    steam_id64: str = ""
    avatar_icon: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "SteamID": self.steam_id,
            "SteamID64": self.steam_id64,
            "AvatarIcon": self.avatar_icon,
        }


def cache_key(app_id: int | str) -> str:
    """
    Canonical cache key for an app id: the decimal string of the integer.

    Numeric and string forms of the same id must hit the same entry.
    """
    return str(int(str(app_id).strip()))


def store_link(app_id: int) -> str:
    return STORE.app_url_template.format(app_id=app_id)


def icon_url(app_id: int) -> str:
    return STORE.icon_url_template.format(app_id=app_id)


@dataclass(frozen=True)
class GameRecord:
    """
    Store metadata for one app id.

    A record with an empty `name` is the negative entry for an app id the store does not know;
    it is cached so the id is never fetched again, and never returned to clients.
    """

    app_id: int
    name: str = ""
    icon: str = ""
    features: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    release_date: int = 0
    developer: str = ""
    publisher: str = ""
    rating: int = -1
    store_link: str = ""

    @property
    def key(self) -> str:
        return cache_key(self.app_id)

    @property
    def is_known_absent(self) -> bool:
        return self.name == ""

    @classmethod
    def placeholder(cls, app_id: int) -> GameRecord:
        return cls(app_id=int(app_id))

    def to_dict(self) -> dict[str, Any]:
        # Wire keys of the game details JSON; clients depend on them.
        return {
            "AppId": self.app_id,
            "Name": self.name,
            "Icon": self.icon,
            "Features": list(self.features),
            "Genres": list(self.genres),
            "ReleaseDate": self.release_date,
            "Developer": self.developer,
            "Publisher": self.publisher,
            "Rating": self.rating,
            "StoreLink": self.store_link,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameRecord:
        if not isinstance(data, dict):
            raise ValueError(f"expected a record object, got {type(data).__name__}")
        app_id = parse_int_text(data.get("AppId"))
        if not app_id:
            raise ValueError(f"record has no AppId: {data!r}")
        release_date = parse_int_text(data.get("ReleaseDate"))
        rating = parse_int_text(data.get("Rating"))
        return cls(
            app_id=app_id,
            # Name is kept verbatim: an empty name is the negative marker.
            name=str(data.get("Name") or ""),
            icon=as_str(data.get("Icon")),
            features=str_list(data.get("Features")),
            genres=str_list(data.get("Genres")),
            release_date=release_date if release_date is not None else 0,
            developer=str(data.get("Developer") or ""),
            publisher=str(data.get("Publisher") or ""),
            rating=rating if rating is not None else -1,
            store_link=as_str(data.get("StoreLink")),
        )


class CacheState(str, Enum):
    PRESENT = "present"
    KNOWN_ABSENT = "known_absent"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CacheLookup:
    state: CacheState
    record: GameRecord | None = None

    @classmethod
    def unknown(cls) -> CacheLookup:
        return cls(CacheState.UNKNOWN)

    @classmethod
    def of(cls, record: GameRecord) -> CacheLookup:
        if record.is_known_absent:
            return cls(CacheState.KNOWN_ABSENT, record)
        return cls(CacheState.PRESENT, record)


class BatchPolicy(str, Enum):
    """What a per-id failure does to the rest of a batch."""

    SKIP = "skip"
    FAIL_FAST = "fail-fast"

    @classmethod
    def parse(cls, value: str | BatchPolicy) -> BatchPolicy:
        if isinstance(value, BatchPolicy):
            return value
        normalized = str(value or "").strip().lower().replace("_", "-")
        for policy in cls:
            if policy.value == normalized:
                return policy
        raise ValueError(f"Unknown batch policy: {value!r} (expected 'skip' or 'fail-fast')")
