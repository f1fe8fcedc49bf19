from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RequestConfig:
    timeout_s: int = 10
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    )


@dataclass(frozen=True)
class StoreConfig:
    app_url_template: str = "https://store.steampowered.com/app/{app_id}/"
    icon_url_template: str = (
        "https://steamcdn-a.akamaihd.net/steam/apps/{app_id}/capsule_184x69.jpg"
    )
    # The store answers with a redirect to its front page for unknown app ids.
    not_found_statuses: frozenset[int] = frozenset({301, 302, 303, 307, 308})


@dataclass(frozen=True)
class CommunityConfig:
    vanity_url_template: str = "https://steamcommunity.com/id/{name}?xml=1"
    profiles_url_template: str = "https://steamcommunity.com/profiles/{name}?xml=1"


@dataclass(frozen=True)
class WebAPIConfig:
    owned_games_url: str = "http://api.steampowered.com/IPlayerService/GetOwnedGames/v0001/"
    api_key_env_var: str = "SteamWebApiKey"


@dataclass(frozen=True)
class CacheConfig:
    # Minimum time between JSON cache rewrites. 0 writes through on every put;
    # deferred writes are flushed at process exit.
    save_min_interval_s: float = 0.0
    # Log cache writes that take longer than this threshold (milliseconds).
    slow_save_log_ms: int = 2000


@dataclass(frozen=True)
class BatchConfig:
    policy: str = "skip"
    max_workers: int = 1


REQUEST = RequestConfig()
STORE = StoreConfig()
COMMUNITY = CommunityConfig()
WEB_API = WebAPIConfig()
CACHE = CacheConfig()
BATCH = BatchConfig()
