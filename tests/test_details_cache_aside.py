from __future__ import annotations

import re
import threading
import time

import pytest


def _page(name: str, rating: int = 90) -> bytes:
    return (
        f'<div class="apphub_AppName">{name}</div>'
        f'<div class="user_reviews_summary_row" '
        f'data-tooltip-html="{rating}% of the 10 user reviews for this game are positive."></div>'
        f'<div class="date">2012</div>'
    ).encode("utf-8")


class FakeStoreFetcher:
    """
    Serves store pages by app id. `pages` maps app id -> (status, body); unknown ids redirect.
    """

    def __init__(self, pages=None, delays=None):
        self.pages = dict(pages or {})
        self.delays = dict(delays or {})
        self.calls: list[int] = []
        self.allow_redirects: list[bool] = []
        self._lock = threading.Lock()

    def get(self, url, *, params=None, allow_redirects=True, counter_key="http_get"):
        from steamfilter.clients.http_client import FetchedDocument

        app_id = int(re.search(r"/app/(-?\d+)/", url).group(1))
        with self._lock:
            self.calls.append(app_id)
            self.allow_redirects.append(allow_redirects)
        if app_id in self.delays:
            time.sleep(self.delays[app_id])
        status, body = self.pages.get(app_id, (302, b""))
        return FetchedDocument(status_code=status, body=body, url=url)


def _retriever(fetcher, cache=None, **kwargs):
    from steamfilter.clients.store_client import StoreClient
    from steamfilter.pipelines.details_pipeline import GameDetailsRetriever

    return GameDetailsRetriever(StoreClient(fetcher), cache, **kwargs)


def test_second_batch_is_served_from_cache(tmp_path):
    from steamfilter.cache import JsonMetadataCache

    fetcher = FakeStoreFetcher({5: (200, _page("Five")), 7: (200, _page("Seven"))})
    cache = JsonMetadataCache(tmp_path / "cache.json")

    first = _retriever(fetcher, cache).retrieve_batch(["5", "7"])
    assert [r.name for r in first] == ["Five", "Seven"]
    assert fetcher.calls == [5, 7]

    second = _retriever(fetcher, cache).retrieve_batch(["5", "7"])
    assert second == first
    assert [r.to_dict() for r in second] == [r.to_dict() for r in first]
    assert fetcher.calls == [5, 7]


def test_cache_survives_a_new_process(tmp_path):
    from steamfilter.cache import JsonMetadataCache

    path = tmp_path / "cache.json"
    fetcher = FakeStoreFetcher({440: (200, _page("Team Fortress 2"))})
    _retriever(fetcher, JsonMetadataCache(path)).retrieve_batch([440])

    reopened = JsonMetadataCache(path)
    out = _retriever(FakeStoreFetcher(), reopened).retrieve_batch(["440"])
    assert [r.name for r in out] == ["Team Fortress 2"]


def test_redirect_writes_negative_entry_and_is_never_refetched(tmp_path):
    from steamfilter.cache import JsonMetadataCache
    from steamfilter.models import CacheState

    fetcher = FakeStoreFetcher({5: (200, _page("Five"))})
    cache = JsonMetadataCache(tmp_path / "cache.json")

    assert [r.app_id for r in _retriever(fetcher, cache).retrieve_batch(["5", "999"])] == [5]
    found = cache.lookup("999")
    assert found.state is CacheState.KNOWN_ABSENT
    assert found.record.app_id == 999
    assert found.record.name == ""

    retriever = _retriever(fetcher, cache)
    assert [r.app_id for r in retriever.retrieve_batch(["999", "5"])] == [5]
    assert fetcher.calls == [5, 999]
    assert retriever.stats["by_id_negative_hit"] == 1
    assert retriever.stats["by_id_hit"] == 1


def test_store_is_fetched_without_following_redirects():
    fetcher = FakeStoreFetcher({5: (200, _page("Five"))})
    _retriever(fetcher).retrieve_batch(["5"])
    assert fetcher.allow_redirects == [False]


def test_invalid_ids_are_dropped_and_order_is_preserved():
    pages = {n: (200, _page(f"Game {n}")) for n in (5, 7, 9)}
    fetcher = FakeStoreFetcher(pages)
    retriever = _retriever(fetcher)

    out = retriever.retrieve_batch([5, 0, 7, "x", 9])
    assert [r.app_id for r in out] == [5, 7, 9]
    assert fetcher.calls == [5, 7, 9]
    assert retriever.stats["skipped_invalid"] == 2


def test_duplicates_are_not_deduplicated(tmp_path):
    from steamfilter.cache import JsonMetadataCache

    fetcher = FakeStoreFetcher({5: (200, _page("Five"))})
    out = _retriever(fetcher, JsonMetadataCache(tmp_path / "c.json")).retrieve_batch(
        ["5", " 5 ", "5"]
    )
    assert [r.app_id for r in out] == [5, 5, 5]
    # The first occurrence populates the cache; the rest are hits.
    assert fetcher.calls == [5]


def test_empty_batch_is_invalid_input():
    from steamfilter.errors import InvalidInput

    with pytest.raises(InvalidInput):
        _retriever(FakeStoreFetcher()).retrieve_batch([])


def test_skip_policy_drops_failed_ids():
    fetcher = FakeStoreFetcher(
        {5: (200, _page("Five")), 6: (500, b"oops"), 7: (200, _page("Seven"))}
    )
    retriever = _retriever(fetcher, policy="skip")
    out = retriever.retrieve_batch(["5", "6", "7"])
    assert [r.app_id for r in out] == [5, 7]
    assert retriever.stats["errors"] == 1


def test_fail_fast_policy_aborts_on_first_error():
    from steamfilter.errors import UpstreamError

    fetcher = FakeStoreFetcher(
        {5: (200, _page("Five")), 6: (500, b"oops"), 7: (200, _page("Seven"))}
    )
    with pytest.raises(UpstreamError) as exc:
        _retriever(fetcher, policy="fail-fast").retrieve_batch(["5", "6", "7"])
    assert exc.value.status_code == 500
    assert fetcher.calls == [5, 6]


def test_redirect_is_not_an_error_under_fail_fast():
    fetcher = FakeStoreFetcher({7: (200, _page("Seven"))})
    out = _retriever(fetcher, policy="fail-fast").retrieve_batch(["404", "7"])
    assert [r.app_id for r in out] == [7]


def test_network_failure_is_a_per_id_error():
    from steamfilter.errors import NetworkError

    class FlakyFetcher(FakeStoreFetcher):
        def get(self, url, **kwargs):
            if "/app/6/" in url:
                raise NetworkError("connection reset", url=url)
            return super().get(url, **kwargs)

    fetcher = FlakyFetcher({5: (200, _page("Five")), 7: (200, _page("Seven"))})
    out = _retriever(fetcher).retrieve_batch(["5", "6", "7"])
    assert [r.app_id for r in out] == [5, 7]


def test_failed_ids_are_not_negative_cached(tmp_path):
    from steamfilter.cache import JsonMetadataCache
    from steamfilter.models import CacheState

    cache = JsonMetadataCache(tmp_path / "cache.json")
    fetcher = FakeStoreFetcher({6: (503, b"")})
    _retriever(fetcher, cache).retrieve_batch(["6"])
    _retriever(fetcher, cache).retrieve_batch(["6"])
    assert cache.lookup("6").state is CacheState.UNKNOWN
    assert fetcher.calls == [6, 6]


def test_cache_read_failure_aborts_the_batch():
    from steamfilter.errors import CacheError

    class BrokenCache:
        def lookup(self, key):
            raise CacheError("table unavailable")

        def get(self, key):
            raise CacheError("table unavailable")

        def put(self, record):
            raise AssertionError("put should not be reached")

    fetcher = FakeStoreFetcher({5: (200, _page("Five"))})
    with pytest.raises(CacheError):
        _retriever(fetcher, BrokenCache()).retrieve_batch(["5", "7"])
    assert fetcher.calls == []


def test_cache_write_failure_does_not_fail_the_request():
    from steamfilter.errors import CacheError
    from steamfilter.models import CacheLookup

    class ReadOnlyCache:
        def __init__(self):
            self.puts = 0

        def lookup(self, key):
            return CacheLookup.unknown()

        def get(self, key):
            return None

        def put(self, record):
            self.puts += 1
            raise CacheError("read-only")

    cache = ReadOnlyCache()
    fetcher = FakeStoreFetcher({5: (200, _page("Five"))})
    out = _retriever(fetcher, cache).retrieve_batch(["5", "999"])
    assert [r.app_id for r in out] == [5]
    assert cache.puts == 2


def test_without_cache_every_call_fetches():
    fetcher = FakeStoreFetcher({5: (200, _page("Five"))})
    _retriever(fetcher, None).retrieve_batch(["5"])
    _retriever(fetcher, None).retrieve_batch(["5"])
    assert fetcher.calls == [5, 5]


def test_parallel_retrieval_keeps_input_order():
    pages = {n: (200, _page(f"Game {n}")) for n in (1, 2, 3, 4)}
    # Earlier ids finish last.
    delays = {1: 0.08, 2: 0.05, 3: 0.02, 4: 0.0}
    fetcher = FakeStoreFetcher(pages, delays)
    out = _retriever(fetcher, max_workers=4).retrieve_batch(["1", "2", "x", "3", "4"])
    assert [r.app_id for r in out] == [1, 2, 3, 4]
    assert sorted(fetcher.calls) == [1, 2, 3, 4]


def test_parallel_fail_fast_raises():
    from steamfilter.errors import UpstreamError

    pages = {n: (200, _page(f"Game {n}")) for n in (1, 3)}
    pages[2] = (500, b"")
    fetcher = FakeStoreFetcher(pages)
    with pytest.raises(UpstreamError):
        _retriever(fetcher, policy="fail-fast", max_workers=2).retrieve_batch(["1", "2", "3"])


def test_parse_app_id():
    from steamfilter.pipelines.details_pipeline import parse_app_id

    assert parse_app_id("440") == 440
    assert parse_app_id(" 440 ") == 440
    assert parse_app_id(440) == 440
    assert parse_app_id("0") is None
    assert parse_app_id("-3") == -3
    assert parse_app_id("+12") == 12
    assert parse_app_id("x") is None
    assert parse_app_id("") is None
    assert parse_app_id("4.5") is None
    assert parse_app_id("1_000") is None
    assert parse_app_id("\u0664\u0662") is None
    assert parse_app_id("-0") is None


def test_negative_ids_are_fetched_and_cached_as_absent(tmp_path):
    from steamfilter.cache import JsonMetadataCache
    from steamfilter.models import CacheState

    fetcher = FakeStoreFetcher({7: (200, _page("Seven"))})
    cache = JsonMetadataCache(tmp_path / "cache.json")
    out = _retriever(fetcher, cache).retrieve_batch(["-5", "7"])

    assert [r.app_id for r in out] == [7]
    assert fetcher.calls == [-5, 7]
    assert cache.lookup("-5").state is CacheState.KNOWN_ABSENT


def test_page_without_name_is_cached_as_absent(tmp_path):
    from steamfilter.cache import JsonMetadataCache
    from steamfilter.models import CacheState

    nameless = b'<div class="date">2012</div><p>This item is no longer available.</p>'
    fetcher = FakeStoreFetcher({5: (200, nameless)})
    cache = JsonMetadataCache(tmp_path / "cache.json")

    first = _retriever(fetcher, cache)
    assert first.retrieve_batch(["5"]) == []
    assert first.stats["by_id_negative_fetch"] == 1
    assert cache.lookup("5").state is CacheState.KNOWN_ABSENT

    second = _retriever(fetcher, cache)
    assert second.retrieve_batch(["5"]) == []
    assert second.stats["by_id_negative_hit"] == 1
    assert fetcher.calls == [5]
