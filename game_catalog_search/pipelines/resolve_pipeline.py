from __future__ import annotations

import logging

from ..clients import IGDBClient
from ..schema import StoredGame
from ..store import CatalogStore
from .remote_search import record_from_igdb


def materialize_game(igdb_id: int, *, store: CatalogStore, client: IGDBClient) -> StoredGame | None:
    """
    Fetch a game from IGDB and create or refresh it in the local store.

    Returns None ("not found") when IGDB has no usable record (unreachable, absent, or untitled);
    nothing is written in that case. Store failures raise UpsertError.
    """
    raw = client.get_game(igdb_id)
    if raw is None:
        logging.warning(f"[RESOLVE] IGDB game {igdb_id} not found")
        return None
    record = record_from_igdb(raw)
    if record is None:
        logging.warning(f"[RESOLVE] IGDB game {igdb_id} has no usable title; not stored")
        return None
    if record.igdb_id != igdb_id:
        logging.warning(f"[RESOLVE] IGDB returned id={record.igdb_id} when asked for {igdb_id}; not stored")
        return None
    return store.upsert_record(record)


def resolve_game(
    igdb_id: int,
    *,
    store: CatalogStore,
    client: IGDBClient | None,
    refresh: bool = False,
) -> StoredGame | None:
    """
    Make sure a game exists locally and return it.

    An existing local row is returned as-is unless `refresh` is set; otherwise the record is
    materialized from IGDB.
    """
    if not refresh:
        existing = store.get_by_igdb_id(igdb_id)
        if existing is not None:
            return existing
    if client is None:
        logging.warning(f"[RESOLVE] IGDB client unavailable; cannot materialize game {igdb_id}")
        return None
    return materialize_game(igdb_id, store=store, client=client)
