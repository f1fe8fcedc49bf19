"""
Utility functions and helpers.

This module uses lazy attribute loading so that importing a submodule (e.g. `identity`) does not
pull in YAML loading or the cache machinery.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "CacheIOTracker",
    "ProjectPaths",
    "load_credentials",
    "load_json_cache",
    "profile_url",
    "resolve_identifier",
    "save_json_cache",
    "steam_web_api_key",
]


def __getattr__(name: str) -> Any:  # pragma: no cover
    if name in {
        "CacheIOTracker",
        "ProjectPaths",
        "load_credentials",
        "load_json_cache",
        "save_json_cache",
        "steam_web_api_key",
    }:
        from . import utilities as _u

        return getattr(_u, name)

    if name in {"profile_url", "resolve_identifier"}:
        from . import identity as _i

        return getattr(_i, name)

    raise AttributeError(name)
