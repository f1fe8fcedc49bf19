from __future__ import annotations

import logging

from ..config import STORE
from ..errors import NotFound, UpstreamError
from ..models import GameRecord, store_link
from .http_client import DocumentFetcher
from .store_page import parse_game_page


class StoreClient:
    """
    Fetch and parse store pages by app id.

    Redirects are not followed: the store redirects unknown app ids to its front page, and that
    redirect is the only "does not exist" signal it gives.
    """

    def __init__(self, fetcher: DocumentFetcher):
        self._fetcher = fetcher

    def fetch_game(self, app_id: int) -> GameRecord:
        url = store_link(app_id)
        logging.info(f"[STORE] Fetching store page {url}")
        doc = self._fetcher.get(url, allow_redirects=False, counter_key="http_store")

        if doc.status_code in STORE.not_found_statuses:
            raise NotFound(f"Game is missing from Steam: {doc.status_code} (url: {url})")

        if not doc.ok:
            raise UpstreamError(
                f"Steam response code for fetching store page: {doc.status_code} (url: {url})",
                status_code=doc.status_code,
                url=url,
            )

        return parse_game_page(app_id, doc.body)
