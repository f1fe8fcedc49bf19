"""
Request handlers in the web-request-proxy shape (query parameters + headers in, status code +
headers + body out). They are framework-neutral: a serverless entry point or a WSGI shim maps
its own request object onto ApiRequest and returns ApiResponse fields as-is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import CacheError, InvalidInput, SteamFilterError
from .pipelines.context import ServiceContext
from .pipelines.formatting import add_profile_to_json, format_records

STATUS_OK = 200
# Malformed or empty requests. Existing clients check for this exact code.
STATUS_BAD_REQUEST = 418
STATUS_SERVER_ERROR = 500


@dataclass(frozen=True)
class ApiRequest:
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)

    def param(self, name: str) -> str:
        return str((self.query or {}).get(name, "") or "").strip()

    def header(self, name: str) -> str:
        wanted = name.lower()
        for k, v in (self.headers or {}).items():
            if str(k).lower() == wanted:
                return str(v or "")
        return ""


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    body: str
    headers: dict[str, str] = field(default_factory=dict)
    is_base64_encoded: bool = False


def create_response(status: int, body: str, origin: str) -> ApiResponse:
    return ApiResponse(
        status_code=status,
        body=body,
        headers={
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": origin,
            "X-Content-Type-Options": "nosniff",
        },
    )


def get_game_details(request: ApiRequest, ctx: ServiceContext) -> ApiResponse:
    """
    `?appId=1,2,3[&skipCache=1]` -> JSON array of game records.
    """
    origin = request.header("origin")
    all_app_ids = request.param("appId")
    if not all_app_ids:
        return create_response(STATUS_BAD_REQUEST, "No appIds specified", origin)

    skip_cache = bool(request.param("skipCache"))
    try:
        retriever = ctx.retriever(skip_cache=skip_cache)
    except CacheError as e:
        logging.error(f"[CACHE] {e}")
        return create_response(STATUS_SERVER_ERROR, str(e), origin)

    try:
        records = retriever.retrieve_batch(all_app_ids.split(","))
    except InvalidInput as e:
        return create_response(STATUS_BAD_REQUEST, str(e), origin)
    except SteamFilterError as e:
        logging.error(f"Game details request aborted: {e}")
        return create_response(STATUS_SERVER_ERROR, str(e), origin)

    logging.info(f"[STORE] Cache stats: {retriever.format_cache_stats()}")
    logging.info(f"[CACHE] Metadata cache: {ctx.format_cache_stats()}")
    return create_response(STATUS_OK, format_records(records), origin)


def get_game_list(request: ApiRequest, ctx: ServiceContext) -> ApiResponse:
    """
    `?user=<vanity|steamid64|profile url>` -> owned games JSON with the profile fields added.
    """
    origin = request.header("origin")
    user = request.param("user")
    if not user:
        return create_response(STATUS_BAD_REQUEST, "No user given", origin)

    try:
        profile = ctx.profiles.fetch_profile(user)
        owned = ctx.owned_games().fetch_owned_games(profile.steam_id64)
    except SteamFilterError as e:
        logging.warning(f"[PROFILE] Game list for {user!r} failed: {e}")
        return create_response(STATUS_BAD_REQUEST, str(e), origin)

    return create_response(STATUS_OK, add_profile_to_json(owned, profile), origin)
