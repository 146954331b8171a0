from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from ..clients import IGDBClient
from ..config import SEARCH
from ..schema import NormalizedQuery, SearchResult
from ..store import CatalogStore
from ..utils.aliases import EMPTY_ALIAS_TABLE, PlatformAliasTable, resolve_query
from .local_matcher import match_local
from .remote_search import search_remote


def merge_results(local: list[SearchResult], remote: list[SearchResult]) -> list[SearchResult]:
    """
    Local results in rank order, then remote results whose identity has not been seen yet.
    """
    seen: set[int] = set()
    merged: list[SearchResult] = []

    for result in local:
        if result.igdb_id in seen:
            continue
        seen.add(result.igdb_id)
        merged.append(result)

    for result in remote:
        if result.igdb_id in seen:
            continue
        seen.add(result.igdb_id)
        merged.append(result)

    return merged


class CatalogSearch:
    """
    Two-source game search: local store and IGDB looked up concurrently, merged local-first.

    One instance is meant to live for the whole process. Local and remote lookups run on separate
    thread pools, so a remote call abandoned at its deadline never delays a later local lookup.
    At most `max_workers` remote calls are in flight; when all are busy the remote half of a new
    search is skipped. Call `close()` (or use it as a context manager) on shutdown.
    """

    def __init__(
        self,
        store: CatalogStore,
        igdb: IGDBClient | None = None,
        aliases: PlatformAliasTable = EMPTY_ALIAS_TABLE,
        *,
        remote_timeout_s: float = SEARCH.remote_timeout_s,
        max_workers: int = SEARCH.max_workers,
    ):
        self.store = store
        self.igdb = igdb
        self.aliases = aliases
        self.remote_timeout_s = float(remote_timeout_s)
        self._local_executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="catalog-local")
        self._remote_executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="catalog-remote")
        self._remote_slots = threading.BoundedSemaphore(max_workers)

    def __enter__(self) -> CatalogSearch:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._local_executor.shutdown(wait=False, cancel_futures=True)
        self._remote_executor.shutdown(wait=False, cancel_futures=True)

    def _run_remote(self, query: NormalizedQuery, cancel: threading.Event | None) -> list[SearchResult]:
        try:
            return search_remote(self.igdb, query, cancel=cancel)
        finally:
            self._remote_slots.release()

    def _release_if_cancelled(self, future: Future) -> None:
        # A remote task cancelled before it started never reaches `_run_remote`.
        if future.cancelled():
            self._remote_slots.release()

    def _submit_remote(self, query: NormalizedQuery, cancel: threading.Event | None) -> Future:
        skipped: Future = Future()
        skipped.set_result([])
        if self.igdb is None or not query.free_text:
            return skipped
        if not self._remote_slots.acquire(blocking=False):
            logging.warning(f"[SEARCH] All remote workers busy; skipping remote lookup for '{query.free_text}'")
            return skipped
        try:
            future = self._remote_executor.submit(self._run_remote, query, cancel)
        except RuntimeError:
            self._remote_slots.release()
            raise
        future.add_done_callback(self._release_if_cancelled)
        return future

    def _join(
        self,
        local_f: Future,
        remote_f: Future,
        query: NormalizedQuery,
        cancel: threading.Event | None,
    ) -> tuple[list[SearchResult], list[SearchResult]] | None:
        """
        Wait for the local lookup, and for the remote one until its deadline. None when cancelled.
        """
        deadline = time.monotonic() + self.remote_timeout_s
        pending = {local_f, remote_f}
        while pending:
            if cancel is not None and cancel.is_set():
                for f in pending:
                    f.cancel()
                return None
            timeout = SEARCH.cancel_poll_s if cancel is not None else None
            if remote_f in pending:
                remaining = max(0.0, deadline - time.monotonic())
                timeout = remaining if timeout is None else min(timeout, remaining)
            _done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)

            if remote_f in pending and time.monotonic() >= deadline:
                remote_f.cancel()
                pending.discard(remote_f)
                logging.warning(
                    f"[SEARCH] Remote lookup for '{query.free_text}' exceeded {self.remote_timeout_s:.1f}s; "
                    "using local results only"
                )

        local = local_f.result() if local_f.done() and not local_f.cancelled() else []
        remote = remote_f.result() if remote_f.done() and not remote_f.cancelled() else []
        return local, remote

    def search(self, raw_query: str, *, cancel: threading.Event | None = None) -> list[SearchResult]:
        """
        Ranked, deduplicated results for a raw query. Never raises for source failures.

        Empty or too-short queries return [] without touching either source. Setting `cancel`
        abandons the request: pending lookups are cancelled and [] is returned.
        """
        query = resolve_query(raw_query, self.aliases)
        if query is None:
            return []

        t0 = time.perf_counter()
        local_f = self._local_executor.submit(match_local, self.store, query)
        remote_f = self._submit_remote(query, cancel)

        joined = self._join(local_f, remote_f, query, cancel)
        if joined is None:
            logging.info(f"[SEARCH] Cancelled search for '{query.canonical}'")
            return []
        local, remote = joined

        merged = merge_results(local, remote)
        elapsed_ms = int(round((time.perf_counter() - t0) * 1000.0))
        logging.info(
            f"[SEARCH] '{query.canonical}' -> {len(merged)} results "
            f"(local={len(local)}, remote={len(remote)}, platforms={sorted(query.platform_ids)}, "
            f"{elapsed_ms}ms)"
        )
        return merged
