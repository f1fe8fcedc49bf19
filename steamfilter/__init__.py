"""steamfilter - Steam store metadata and profile lookups behind a persistent cache."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("steamfilter")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"
