from __future__ import annotations

import re

from ..config import COMMUNITY
from ..models import IdentifierKind, ResolvedIdentifier

_VANITY_URL_RE = re.compile(r"https://steamcommunity\.com/id/([^/?]+)")
_PROFILES_URL_RE = re.compile(r"https://steamcommunity\.com/profiles/([^/?]+)")
_STEAM_ID64_RE = re.compile(r"[0-9]{17}")


def resolve_identifier(raw: str) -> ResolvedIdentifier:
    """
    Classify a user-supplied profile reference.

    Accepted shapes:
    - community URLs: `.../id/<vanity>` or `.../profiles/<steamid64>` (any trailing path/query)
    - a bare 64-bit Steam id (17 digits)
    - anything else is taken as a vanity name, including URLs of an unrecognized shape

    Pure function of the input; never raises.
    """
    s = str(raw or "")
    if s.startswith("http"):
        m = _VANITY_URL_RE.search(s)
        if m:
            return ResolvedIdentifier(m.group(1), IdentifierKind.VANITY)
        m = _PROFILES_URL_RE.search(s)
        if m:
            return ResolvedIdentifier(m.group(1), IdentifierKind.DIRECT)
        return ResolvedIdentifier(s, IdentifierKind.VANITY)

    if _STEAM_ID64_RE.search(s):
        return ResolvedIdentifier(s, IdentifierKind.DIRECT)
    return ResolvedIdentifier(s, IdentifierKind.VANITY)


def profile_url(resolved: ResolvedIdentifier) -> str:
    if resolved.is_vanity:
        return COMMUNITY.vanity_url_template.format(name=resolved.identifier)
    return COMMUNITY.profiles_url_template.format(name=resolved.identifier)
