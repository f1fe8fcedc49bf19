from __future__ import annotations

import atexit
import logging
import threading
from pathlib import Path
from typing import Any, Protocol

from .errors import CacheError
from .models import CacheLookup, GameRecord, cache_key
from .utils.utilities import CacheIOTracker


class MetadataCache(Protocol):
    def lookup(self, key: str) -> CacheLookup: ...

    def get(self, key: str) -> GameRecord | None: ...

    def put(self, record: GameRecord) -> None: ...


class JsonMetadataCache:
    """
    GameRecord store keyed by app id, persisted as `{"by_id": {"<appid>": {...}}}`.

    Entries are never expired. Negative entries (records with an empty name) are stored like any
    other record so that unknown app ids are not fetched again.
    """

    def __init__(self, cache_path: str | Path, *, min_interval_s: float | None = None):
        self.cache_path = Path(cache_path)
        self.stats: dict[str, int] = {}
        self._lock = threading.Lock()
        self._cache_io = CacheIOTracker(
            self.stats, min_interval_s=min_interval_s, flush_at_exit=False
        )
        try:
            raw = self._cache_io.load_json(self.cache_path)
        except (OSError, ValueError) as e:
            raise CacheError(f"Cannot read metadata cache {self.cache_path}: {e}") from e
        by_id = raw.get("by_id", {}) if raw else {}
        if not isinstance(by_id, dict):
            raise CacheError(
                f"Metadata cache file has an unsupported format: {self.cache_path} "
                "(delete it to rebuild)."
            )
        # Keys are re-normalized so that "0042" or numeric JSON keys from older files still hit.
        self._by_id: dict[str, Any] = {}
        for k, v in by_id.items():
            try:
                self._by_id[cache_key(k)] = v
            except ValueError:
                logging.warning(f"[CACHE] Ignoring non-numeric cache key {k!r}")
        atexit.register(self.flush)

    def __len__(self) -> int:
        return len(self._by_id)

    def lookup(self, key: str) -> CacheLookup:
        try:
            k = cache_key(key)
        except ValueError as e:
            raise CacheError(f"Invalid cache key {key!r}") from e
        with self._lock:
            raw = self._by_id.get(k)
        if raw is None:
            return CacheLookup.unknown()
        try:
            record = GameRecord.from_dict(raw)
        except ValueError as e:
            raise CacheError(f"Corrupt cache entry for AppId {k}: {e}") from e
        return CacheLookup.of(record)

    def get(self, key: str) -> GameRecord | None:
        return self.lookup(key).record

    def put(self, record: GameRecord) -> None:
        data = record.to_dict()
        with self._lock:
            if self._by_id.get(record.key) == data:
                return
            self._by_id[record.key] = data
            snapshot = {"by_id": dict(self._by_id)}
            try:
                self._cache_io.save_json(snapshot, self.cache_path)
            except OSError as e:
                raise CacheError(f"Cannot write metadata cache {self.cache_path}: {e}") from e

    def flush(self) -> None:
        with self._lock:
            try:
                self._cache_io.flush()
            except OSError as e:
                raise CacheError(f"Cannot write metadata cache {self.cache_path}: {e}") from e

    def format_cache_stats(self) -> str:
        return f"entries={len(self._by_id)}, {CacheIOTracker.format_io(self.stats)}"
