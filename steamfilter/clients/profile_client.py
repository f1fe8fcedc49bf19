from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from ..errors import InvalidInput, ParseError, UpstreamError
from ..models import Profile
from ..utils.identity import profile_url, resolve_identifier
from .http_client import DocumentFetcher


def _field(root: ET.Element, tag: str) -> str:
    el = root.find(tag)
    if el is None:
        return ""
    return "".join(el.itertext()).strip()


def parse_profile(body: bytes | str) -> Profile:
    """
    Decode a community profile XML document (`?xml=1`).

    Missing fields decode to "". A document without a <profile> root (Steam answers unknown
    profiles with <response><error>...</error></response>) raises ParseError.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise ParseError(f"Profile document is not valid XML: {e}") from e

    if root.tag != "profile":
        error = _field(root, "error")
        if error:
            raise ParseError(f"Profile lookup failed: {error}")
        raise ParseError(f"Profile document has root <{root.tag}>, expected <profile>")

    return Profile(
        steam_id=_field(root, "steamID"),
        steam_id64=_field(root, "steamID64"),
        avatar_icon=_field(root, "avatarFull"),
    )


class ProfileClient:
    """Resolve a user-supplied profile reference into a Profile. Profiles are not cached."""

    def __init__(self, fetcher: DocumentFetcher):
        self._fetcher = fetcher

    def fetch_profile(self, raw: str) -> Profile:
        if not str(raw or "").strip():
            raise InvalidInput("No profile name given")

        resolved = resolve_identifier(str(raw).strip())
        url = profile_url(resolved)
        logging.info(f"[PROFILE] Fetching {resolved.kind.value} profile {resolved.identifier!r}")
        doc = self._fetcher.get(url, counter_key="http_profile")
        if not doc.ok:
            raise UpstreamError(
                f"Steam API response code for fetching profile: {doc.status_code} (url: {url})",
                status_code=doc.status_code,
                url=url,
            )
        return parse_profile(doc.body)
