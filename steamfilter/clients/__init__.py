"""Clients for Steam document sources (store pages, community profiles, Web API)."""

from __future__ import annotations

from typing import Any

__all__ = [
    "DocumentFetcher",
    "FetchedDocument",
    "HTTPDocumentClient",
    "OwnedGamesClient",
    "ProfileClient",
    "StoreClient",
]


def __getattr__(name: str) -> Any:  # pragma: no cover
    # Lazy so that `models` can use `clients.parse` without importing the clients themselves.
    if name in {"DocumentFetcher", "FetchedDocument", "HTTPDocumentClient"}:
        from . import http_client as _h

        return getattr(_h, name)
    if name == "OwnedGamesClient":
        from .web_api_client import OwnedGamesClient

        return OwnedGamesClient
    if name == "ProfileClient":
        from .profile_client import ProfileClient

        return ProfileClient
    if name == "StoreClient":
        from .store_client import StoreClient

        return StoreClient
    raise AttributeError(name)
