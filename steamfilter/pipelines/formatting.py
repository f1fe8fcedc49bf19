from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from ..models import GameRecord, Profile


def format_records(records: Iterable[GameRecord] | None) -> str:
    """
    JSON array of records. An empty (or missing) batch is always "[]", never "null".
    """
    return json.dumps([r.to_dict() for r in (records or [])], ensure_ascii=False)


def add_profile_to_json(owned_games: dict[str, Any], profile: Profile) -> str:
    """
    Owned-games Web API payload with the profile's display fields merged at the top level.
    """
    out = dict(owned_games or {})
    out.update(profile.to_dict())
    return json.dumps(out, ensure_ascii=False)
