from __future__ import annotations

import atexit
import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..config import CACHE, WEB_API

# ----------------------------
# Paths / Folder structure
# ----------------------------


@dataclass(frozen=True)
class ProjectPaths:
    root: Path
    data_dir: Path
    cache_dir: Path
    logs_dir: Path

    @staticmethod
    def from_root(root: str | Path) -> ProjectPaths:
        data_dir = Path(root) / "data"
        return ProjectPaths(Path(root), data_dir, data_dir / "cache", data_dir / "logs")

    def ensure(self) -> None:
        for p in (self.cache_dir, self.logs_dir):
            p.mkdir(parents=True, exist_ok=True)

    @property
    def game_cache(self) -> Path:
        return self.cache_dir / "steamfilter-gamecache.json"

    @property
    def credentials(self) -> Path:
        return self.data_dir / "credentials.yaml"


# ----------------------------
# JSON cache files
# ----------------------------


def load_json_cache(path: str | Path) -> dict[str, Any]:
    """
    Read a JSON cache file. A missing or blank file is an empty cache.

    Raises OSError/ValueError for unreadable or corrupt files; callers decide whether that is
    fatal.
    """
    p = Path(path)
    if not p.is_file():
        return {}
    text = p.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    raw = json.loads(text)
    if not isinstance(raw, dict):
        raise ValueError(f"cache root must be an object, got {type(raw).__name__}")
    return raw


def save_json_cache(cache: dict[str, Any], path: str | Path) -> None:
    """Write `cache` next to `path` and move it into place, so readers never see half a file."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(f".{p.name}.{os.getpid()}.tmp")
    tmp.write_text(json.dumps(cache, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp, p)


def _elapsed_ms(t0: float) -> int:
    return int(round((time.perf_counter() - t0) * 1000.0))


@dataclass
class CacheIOTracker:
    """
    Count JSON cache loads/saves (and their milliseconds) into a shared `stats` dict.

    With `min_interval_s` > 0, saves closer together than the interval are deferred; only the
    newest snapshot is kept and it is written by `flush()` or at process exit. Owners that guard
    writes with their own lock pass `flush_at_exit=False` and register their own locked flush.
    """

    stats: dict[str, Any]
    prefix: str = "cache"
    min_interval_s: float | None = None
    flush_at_exit: bool = True
    _last_save_s: float | None = field(default=None, init=False, repr=False)
    _pending: tuple[dict[str, Any], Path] | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        for suffix in ("load_count", "load_ms", "save_count", "save_ms"):
            self.stats.setdefault(f"{self.prefix}_{suffix}", 0)
        if self.flush_at_exit:
            atexit.register(self.flush)

    def _add(self, suffix: str, amount: int) -> None:
        key = f"{self.prefix}_{suffix}"
        self.stats[key] = int(self.stats.get(key, 0) or 0) + amount

    def _interval(self) -> float:
        if self.min_interval_s is not None:
            return float(self.min_interval_s)
        return float(CACHE.save_min_interval_s or 0.0)

    def load_json(self, path: str | Path) -> dict[str, Any]:
        t0 = time.perf_counter()
        raw = load_json_cache(path)
        self._add("load_count", 1)
        self._add("load_ms", _elapsed_ms(t0))
        return raw

    def save_json(self, cache: dict[str, Any], path: str | Path) -> None:
        interval = self._interval()
        if (
            interval > 0
            and self._last_save_s is not None
            and time.monotonic() - self._last_save_s < interval
        ):
            self._pending = (cache, Path(path))
            return
        self._pending = None
        self._write(cache, Path(path))

    def flush(self) -> None:
        if self._pending is None:
            return
        cache, path = self._pending
        self._pending = None
        self._write(cache, path)

    def _write(self, cache: dict[str, Any], path: Path) -> None:
        t0 = time.perf_counter()
        save_json_cache(cache, path)
        self._last_save_s = time.monotonic()
        dur_ms = _elapsed_ms(t0)
        self._add("save_count", 1)
        self._add("save_ms", dur_ms)
        if CACHE.slow_save_log_ms and dur_ms >= CACHE.slow_save_log_ms:
            logging.info(f"[CACHE] Slow write of '{path.name}': {dur_ms}ms")

    @staticmethod
    def format_io(stats: dict[str, Any] | None, *, prefix: str = "cache") -> str:
        s = stats or {}
        return (
            f"{prefix} load_ms={int(s.get(f'{prefix}_load_ms', 0) or 0)} "
            f"saves={int(s.get(f'{prefix}_save_count', 0) or 0)} "
            f"save_ms={int(s.get(f'{prefix}_save_ms', 0) or 0)}"
        )


# ----------------------------
# Credentials
# ----------------------------


def load_credentials(credentials_path: str | Path) -> dict[str, Any]:
    """
    Parse a credentials YAML file, e.g. `{"steam": {"web_api_key": "..."}}`.

    Raises FileNotFoundError when the file does not exist.
    """
    path = Path(credentials_path)
    if not path.is_file():
        raise FileNotFoundError(f"Credentials file not found: {path}")
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def steam_web_api_key(credentials_path: str | Path | None = None) -> str:
    """
    Steam Web API key from credentials.yaml (`steam.web_api_key`), else from $SteamWebApiKey.

    Returns "" when neither is configured.
    """
    key = ""
    if credentials_path is not None:
        try:
            steam = load_credentials(credentials_path).get("steam") or {}
        except FileNotFoundError:
            steam = {}
        if isinstance(steam, dict):
            key = _key_text(steam.get("web_api_key"))
    return key or _key_text(os.environ.get(WEB_API.api_key_env_var))


def _key_text(value: object) -> str:
    return str(value or "").strip()
