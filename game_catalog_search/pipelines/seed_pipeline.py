from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from ..clients import IGDBClient
from ..config import CLI, IGDB
from ..errors import UpsertError
from ..store import CatalogStore
from ..utils.progress import Progress
from .remote_search import record_from_igdb


@dataclass
class SeedSummary:
    fetched: int = 0
    stored: int = 0
    skipped: int = 0
    batches: int = 0


def run_seed(
    *,
    store: CatalogStore,
    client: IGDBClient,
    limit: int = IGDB.seed_batch_size,
    max_batches: int = 5,
    offset: int = 0,
    max_games: int = 20,
    delay_ms: int = IGDB.seed_delay_ms,
    where: str = "name != null",
    sort: str = "id asc",
) -> SeedSummary:
    """
    Page through IGDB's game list and upsert every titled record into the local store.

    Stops after `max_batches` pages, once `max_games` records have been stored, or when IGDB
    returns a short page. A failed page request aborts the run with RuntimeError; a record that
    fails to store is logged and counted as skipped.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")

    summary = SeedSummary()
    progress = Progress("SEED", total=max_games if max_games > 0 else None, every_n=CLI.progress_every_n)

    for batch in range(max_batches):
        page_offset = offset + batch * limit
        page = client.list_games(limit=limit, offset=page_offset, where=where, sort=sort)
        if page is None:
            raise RuntimeError(f"IGDB request failed at offset {page_offset}")
        summary.batches += 1
        summary.fetched += len(page)

        for raw in page:
            if max_games > 0 and summary.stored >= max_games:
                break
            record = record_from_igdb(raw)
            if record is None:
                summary.skipped += 1
                continue
            try:
                store.upsert_record(record)
            except UpsertError as e:
                logging.error(f"[SEED] {e}")
                summary.skipped += 1
                continue
            summary.stored += 1
            progress.maybe_log(summary.stored)

        logging.info(
            f"[SEED] Batch {batch + 1}/{max_batches} fetched {len(page)} games (offset {page_offset}); "
            f"stored {summary.stored} so far"
        )

        if max_games > 0 and summary.stored >= max_games:
            break
        if len(page) < limit:
            logging.info("[SEED] Pagination finished (received less than limit)")
            break
        if batch + 1 < max_batches and delay_ms > 0:
            time.sleep(delay_ms / 1000.0)

    logging.info(
        f"[SEED] Done: fetched={summary.fetched} stored={summary.stored} "
        f"skipped={summary.skipped} batches={summary.batches}"
    )
    return summary
