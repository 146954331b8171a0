from __future__ import annotations

import logging
import threading
from typing import Any

from ..clients import IGDBClient
from ..clients.parse import (
    as_int,
    as_str,
    get_dict,
    get_list_of_dicts,
    normalize_image_url,
    unique_names,
    year_from_epoch_seconds,
)
from ..config import IGDB
from ..schema import CatalogRecord, NormalizedQuery, SearchResult, category_from_game_type


def map_search_result(game: dict[str, Any]) -> SearchResult | None:
    """
    Project one IGDB search item into the caller-facing shape.

    Items without an id, a title, or a searchable game_type are dropped.
    """
    igdb_id = as_int(game.get("id"))
    if igdb_id is None:
        return None
    title = as_str(game.get("name"))
    if not title:
        return None
    category = category_from_game_type(game.get("game_type"))
    if category is None:
        return None
    return SearchResult(
        igdb_id=igdb_id,
        title=title,
        release_year=year_from_epoch_seconds(game.get("first_release_date")),
        cover_url=normalize_image_url(get_dict(game.get("cover")).get("url"), IGDB.search_cover_size),
        category=category,
    )


def search_remote(
    client: IGDBClient | None,
    query: NormalizedQuery,
    *,
    cancel: threading.Event | None = None,
) -> list[SearchResult]:
    """
    Remote half of a search. Never raises: missing client, empty free text or any failure yield [].
    """
    if client is None or not query.free_text:
        return []
    try:
        items = client.search_games(query.free_text, query.platform_ids or None, cancel=cancel)
        out: list[SearchResult] = []
        for item in items:
            result = map_search_result(item)
            if result is not None:
                out.append(result)
        return out
    except Exception as e:
        logging.warning(f"[SEARCH] Remote lookup failed for '{query.free_text}': {type(e).__name__}: {e}")
        return []


def record_from_igdb(game: dict[str, Any]) -> CatalogRecord | None:
    """
    Full IGDB payload -> CatalogRecord ready for the local store. None when id or title is missing.
    """
    igdb_id = as_int(game.get("id"))
    title = as_str(game.get("name"))
    if igdb_id is None or not title:
        return None

    screenshots: list[str] = []
    for shot in get_list_of_dicts(game.get("screenshots")):
        url = normalize_image_url(shot.get("url"), IGDB.screenshot_size)
        if url and url not in screenshots:
            screenshots.append(url)

    developers: list[str] = []
    publishers: list[str] = []
    for ic in get_list_of_dicts(game.get("involved_companies")):
        name = as_str(get_dict(ic.get("company")).get("name"))
        if not name:
            continue
        if ic.get("developer") is True:
            developers.append(name)
        if ic.get("publisher") is True:
            publishers.append(name)

    return CatalogRecord(
        igdb_id=igdb_id,
        title=title,
        overview=as_str(game.get("summary")),
        release_year=year_from_epoch_seconds(game.get("first_release_date")),
        cover_url=normalize_image_url(get_dict(game.get("cover")).get("url"), IGDB.record_cover_size),
        screenshot_urls=screenshots,
        platform_names=unique_names([p.get("name") for p in get_list_of_dicts(game.get("platforms"))]),
        developer_names=unique_names(developers),
        publisher_names=unique_names(publishers),
        category=category_from_game_type(game.get("game_type")),
    )
