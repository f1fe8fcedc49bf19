from __future__ import annotations


class SteamFilterError(RuntimeError):
    """Base exception for every failure surfaced by steamfilter."""


class InvalidInput(SteamFilterError):
    """Empty or unusable request input (reported to clients as HTTP 418)."""


class UpstreamError(SteamFilterError):
    """A document source answered with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None, url: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class NetworkError(UpstreamError):
    """Transport failure (connection refused, DNS, timeout, TLS)."""


class ParseError(SteamFilterError):
    """A fetched document could not be decoded into the expected shape."""


class CacheError(SteamFilterError):
    """The metadata cache could not be read or written."""


class NotFound(SteamFilterError):
    """The store signalled that an app id does not exist."""
