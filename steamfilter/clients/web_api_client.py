from __future__ import annotations

import logging
from typing import Any

from ..config import WEB_API
from ..errors import InvalidInput, ParseError
from .http_client import HTTPDocumentClient


class OwnedGamesClient:
    """Steam Web API `IPlayerService/GetOwnedGames` for one account."""

    def __init__(self, api_key: str, http: HTTPDocumentClient):
        self._api_key = str(api_key or "").strip()
        self._http = http

    def fetch_owned_games(self, steam_id64: str) -> dict[str, Any]:
        if not self._api_key:
            raise InvalidInput(
                f"Steam Web API key is not configured (credentials.yaml steam.web_api_key "
                f"or ${WEB_API.api_key_env_var})"
            )
        if not str(steam_id64 or "").strip():
            raise InvalidInput("No SteamID64 given")

        logging.info(f"[WEBAPI] Fetching owned games for {steam_id64}")
        data = self._http.get_json(
            WEB_API.owned_games_url,
            params={"key": self._api_key, "steamid": steam_id64, "format": "json"},
            counter_key="http_owned_games",
            context="Steam API response code for fetching game list",
        )
        if not isinstance(data, dict):
            raise ParseError(f"Owned games response is not an object: {type(data).__name__}")
        return data
