from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests

from ..cache import JsonMetadataCache
from ..clients.http_client import HTTPDocumentClient
from ..clients.profile_client import ProfileClient
from ..clients.store_client import StoreClient
from ..clients.web_api_client import OwnedGamesClient
from ..config import BATCH
from ..models import BatchPolicy
from ..utils.utilities import steam_web_api_key
from .details_pipeline import GameDetailsRetriever


@dataclass
class ServiceContext:
    """
    Process-wide collaborators, built once at startup and passed to the handlers.
    """

    cache_path: Path
    credentials_path: Path | None = None
    policy: BatchPolicy | str = BATCH.policy
    max_workers: int = BATCH.max_workers
    stats: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.http = HTTPDocumentClient(requests.Session(), stats=self.stats)
        self.store = StoreClient(self.http)
        self.profiles = ProfileClient(self.http)
        self._cache: JsonMetadataCache | None = None

    def cache(self) -> JsonMetadataCache:
        # Opened on first use; a broken cache file fails the request that needs it, not startup.
        if self._cache is None:
            self._cache = JsonMetadataCache(self.cache_path)
        return self._cache

    def retriever(self, *, skip_cache: bool = False) -> GameDetailsRetriever:
        return GameDetailsRetriever(
            self.store,
            None if skip_cache else self.cache(),
            policy=self.policy,
            max_workers=self.max_workers,
        )

    def format_cache_stats(self) -> str:
        if self._cache is None:
            return "not opened"
        return self._cache.format_cache_stats()

    def owned_games(self) -> OwnedGamesClient:
        return OwnedGamesClient(steam_web_api_key(self.credentials_path), self.http)

    def format_http_stats(self) -> str:
        return ", ".join(
            HTTPDocumentClient.format_timing(self.stats, key=k)
            for k in ("http_store", "http_profile", "http_owned_games")
        )
