from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from ..config import REQUEST
from ..errors import NetworkError, ParseError, UpstreamError


@dataclass(frozen=True)
class FetchedDocument:
    status_code: int
    body: bytes
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code == 200


class DocumentFetcher(Protocol):
    def get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        allow_redirects: bool = True,
        counter_key: str = "http_get",
    ) -> FetchedDocument: ...


@dataclass
class HTTPDocumentClient:
    """
    Small helper to standardize a GET + timeout + stats counting.

    Clients pass in their own `requests.Session` and optionally a `stats` dict shared with the
    caller. There is no retry: a failed request fails its item once.
    """

    session: requests.Session = field(default_factory=requests.Session)
    stats: dict[str, Any] | None = None
    timeout_s: float = REQUEST.timeout_s
    headers: dict[str, str] | None = None

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        if self.headers is None:
            self.headers = {"User-Agent": REQUEST.user_agent}

    def _bump(self, key: str, amount: int = 1) -> None:
        if self.stats is None:
            return
        with self._lock:
            self.stats[key] = int(self.stats.get(key, 0) or 0) + int(amount)

    @staticmethod
    def format_timing(stats: dict[str, Any] | None, *, key: str) -> str:
        """
        Format request counter and cumulative time for a key tracked via `_bump()`.
        """
        if not stats:
            return f"{key}=0"
        count = int(stats.get(key, 0) or 0)
        ms = int(stats.get(f"{key}_ms", 0) or 0)
        return f"{key}={count} {key}_ms={ms}"

    def get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        allow_redirects: bool = True,
        counter_key: str = "http_get",
    ) -> FetchedDocument:
        self._bump(counter_key)
        kwargs: dict[str, Any] = {
            "timeout": self.timeout_s,
            "allow_redirects": allow_redirects,
        }
        if params is not None:
            kwargs["params"] = params
        if self.headers:
            kwargs["headers"] = self.headers
        t0 = time.perf_counter()
        try:
            r = self.session.get(url, **kwargs)
        except requests.exceptions.RequestException as e:
            self._bump("network_errors")
            logging.error(f"[NETWORK] GET {url}: {type(e).__name__}: {e}")
            raise NetworkError(f"Request failed for {url}: {e}", url=url) from e
        finally:
            t1 = time.perf_counter()
            self._bump(f"{counter_key}_ms", int(round((t1 - t0) * 1000.0)))
        return FetchedDocument(
            status_code=int(r.status_code),
            body=r.content or b"",
            url=url,
            headers=dict(r.headers or {}),
        )

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        counter_key: str = "http_get",
        context: str,
    ) -> Any:
        doc = self.get(url, params=params, counter_key=counter_key)
        if not doc.ok:
            raise UpstreamError(
                f"{context}: response code {doc.status_code} (url: {url})",
                status_code=doc.status_code,
                url=url,
            )
        try:
            return json.loads(doc.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise ParseError(f"{context}: invalid JSON body: {e}") from e
