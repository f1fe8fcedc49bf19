from __future__ import annotations

import logging
import re
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from ..cache import MetadataCache
from ..clients.store_client import StoreClient
from ..config import BATCH
from ..errors import CacheError, InvalidInput, NotFound, ParseError, UpstreamError
from ..models import BatchPolicy, CacheState, GameRecord, cache_key

_APP_ID_RE = re.compile(r"[+-]?[0-9]+")


def parse_app_id(value: str | int) -> int | None:
    """
    App id from a request token: an optionally signed run of ASCII digits.

    Zero and anything else give None. Negative ids are kept; the store redirects them like any
    other unknown id.
    """
    s = str(value).strip()
    if not _APP_ID_RE.fullmatch(s):
        return None
    app_id = int(s)
    if app_id == 0:
        return None
    return app_id


class GameDetailsRetriever:
    """
    Cache-aside retrieval of store metadata for a batch of app ids.

    Per id: cache lookup -> on miss, fetch + parse the store page -> write back to the cache.
    A redirect from the store writes a negative entry so the id is never fetched again.

    Cache read failures always abort the batch. Fetch/parse failures of a single id either skip
    that id (BatchPolicy.SKIP) or abort the batch (BatchPolicy.FAIL_FAST). Cache write failures
    are logged and ignored.
    """

    def __init__(
        self,
        store: StoreClient,
        cache: MetadataCache | None = None,
        *,
        policy: BatchPolicy | str = BATCH.policy,
        max_workers: int = BATCH.max_workers,
    ):
        self.store = store
        self.cache = cache
        self.policy = BatchPolicy.parse(policy)
        self.max_workers = max(1, int(max_workers))
        self.stats: dict[str, int] = {
            "by_id_hit": 0,
            "by_id_fetch": 0,
            "by_id_negative_hit": 0,
            "by_id_negative_fetch": 0,
            "skipped_invalid": 0,
            "errors": 0,
        }
        self._stats_lock = threading.Lock()

    def _bump(self, key: str) -> None:
        with self._stats_lock:
            self.stats[key] = int(self.stats.get(key, 0) or 0) + 1

    def _put_best_effort(self, record: GameRecord) -> None:
        if self.cache is None:
            return
        try:
            self.cache.put(record)
        except CacheError as e:
            logging.warning(f"[CACHE] Failed to cache AppId {record.app_id}: {e}")

    # -------------------------------------------------
    # Single id
    # -------------------------------------------------
    def fetch_game_details(self, app_id: int) -> GameRecord | None:
        """
        Cache-aside lookup for one app id.

        Returns None for ids known to be absent from the store (cached or newly discovered).
        Raises CacheError on cache read failure and UpstreamError/ParseError on fetch failure.
        """
        if self.cache is not None:
            found = self.cache.lookup(cache_key(app_id))
            if found.state is CacheState.PRESENT:
                self._bump("by_id_hit")
                return found.record
            if found.state is CacheState.KNOWN_ABSENT:
                self._bump("by_id_negative_hit")
                return None

        try:
            record = self.store.fetch_game(app_id)
        except NotFound as e:
            logging.warning(f"[STORE] {e}")
            self._bump("by_id_negative_fetch")
            self._put_best_effort(GameRecord.placeholder(app_id))
            return None

        self._put_best_effort(record)
        if record.is_known_absent:
            self._bump("by_id_negative_fetch")
            return None
        self._bump("by_id_fetch")
        return record

    # -------------------------------------------------
    # Batch
    # -------------------------------------------------
    def _process(self, app_id: int, abort: threading.Event) -> GameRecord | None:
        if abort.is_set():
            return None
        try:
            return self.fetch_game_details(app_id)
        except (UpstreamError, ParseError) as e:
            self._bump("errors")
            if self.policy is BatchPolicy.FAIL_FAST:
                abort.set()
                raise
            logging.error(f"Error getting data for AppId {app_id}, {e}")
            return None
        except CacheError:
            abort.set()
            raise

    def retrieve_batch(self, app_ids: Sequence[str | int]) -> list[GameRecord]:
        """
        Records for `app_ids` in input order, skipping invalid ids, ids unknown to the store and
        (under BatchPolicy.SKIP) ids that failed. Duplicates yield one record each.
        """
        if not app_ids:
            raise InvalidInput("No appIds specified")

        valid: list[int] = []
        for raw in app_ids:
            app_id = parse_app_id(raw)
            if app_id is None:
                self._bump("skipped_invalid")
                logging.debug(f"Skipping invalid AppId {raw!r}")
                continue
            valid.append(app_id)

        abort = threading.Event()
        if self.max_workers == 1 or len(valid) <= 1:
            results = [self._process(app_id, abort) for app_id in valid]
        else:
            results = self._process_parallel(valid, abort)

        return [r for r in results if r is not None and not r.is_known_absent]

    def _process_parallel(
        self, app_ids: list[int], abort: threading.Event
    ) -> list[GameRecord | None]:
        results: list[GameRecord | None] = [None] * len(app_ids)
        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = {
                executor.submit(self._process, app_id, abort): i
                for i, app_id in enumerate(app_ids)
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except BaseException:
            abort.set()
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        executor.shutdown(wait=True)
        return results

    def format_cache_stats(self) -> str:
        s = self.stats
        return (
            f"by_id hit={s['by_id_hit']} fetch={s['by_id_fetch']} "
            f"(neg hit={s['by_id_negative_hit']} fetch={s['by_id_negative_fetch']}), "
            f"invalid={s['skipped_invalid']} errors={s['errors']}"
        )
