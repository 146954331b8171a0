from __future__ import annotations

import logging
from typing import Iterable

from ..config import SEARCH
from ..schema import Category, NormalizedQuery, ScoredCandidate, SearchResult, StoredGame
from ..store import CatalogStore
from ..utils.normalize import normalize_query

EXACT_TITLE_SCORE = 1000
PREFIX_TITLE_SCORE = 600
CONTAINS_TITLE_SCORE = 300

TOKEN_WORD_SCORE = 30
TOKEN_WORD_PREFIX_SCORE = 20
TOKEN_CONTAINS_SCORE = 10


def _token_score(token: str, title: str, words: list[str]) -> int:
    if any(w == token for w in words):
        return TOKEN_WORD_SCORE
    if any(w.startswith(token) for w in words):
        return TOKEN_WORD_PREFIX_SCORE
    if token in title:
        return TOKEN_CONTAINS_SCORE
    return 0


def score_candidate(record: StoredGame, free_text: str, tokens: Iterable[str]) -> ScoredCandidate:
    """
    Relevance of one stored game against the free-text part of a query.

    Title-level score (exact / prefix / substring of the whole query) plus a per-token score;
    each token that scored at all also counts towards `matched_token_count`.
    """
    title = normalize_query(record.title)
    words = title.split()
    candidate = ScoredCandidate(record=record)

    if free_text:
        if title == free_text:
            candidate.score += EXACT_TITLE_SCORE
        elif title.startswith(free_text):
            candidate.score += PREFIX_TITLE_SCORE
        elif free_text in title:
            candidate.score += CONTAINS_TITLE_SCORE

    for token in tokens:
        points = _token_score(token, title, words)
        if points:
            candidate.score += points
            candidate.matched_token_count += 1
    return candidate


def rank_candidates(candidates: list[ScoredCandidate]) -> list[ScoredCandidate]:
    """
    Total order: more matched tokens, then higher score, then title (case-insensitive), then id.
    """
    return sorted(
        candidates,
        key=lambda c: (
            -c.matched_token_count,
            -c.score,
            c.record.title.casefold(),
            c.record.igdb_id or 0,
        ),
    )


def to_search_result(record: StoredGame) -> SearchResult | None:
    if not record.igdb_id:
        return None
    title = record.title.strip()
    if not title:
        return None
    return SearchResult(
        igdb_id=record.igdb_id,
        title=title,
        release_year=record.release_year if record.release_year > 0 else None,
        cover_url=record.cover_url if record.cover_url.strip() else None,
        # The local schema keeps no release type; stored games are treated as main releases.
        category=Category.MAIN,
    )


def _results(records: Iterable[StoredGame], limit: int) -> list[SearchResult]:
    out: list[SearchResult] = []
    for record in records:
        result = to_search_result(record)
        if result is None:
            continue
        out.append(result)
        if len(out) >= limit:
            break
    return out


def match_local(
    store: CatalogStore, query: NormalizedQuery, *, limit: int = SEARCH.max_local_results
) -> list[SearchResult]:
    """
    Search the local store and rank the matches. Never raises: failures yield [].
    """
    try:
        if query.platform_only:
            # List the platform's games alphabetically.
            return _results(store.find_by_platforms(query.platform_names, limit=limit), limit)
        if not query.tokens:
            return []

        records = store.find_candidates(query.tokens, query.platform_names or None)
        scored = [score_candidate(r, query.free_text, sorted(query.tokens)) for r in records]
        ranked = rank_candidates(scored)
        return _results((c.record for c in ranked), limit)
    except Exception as e:
        logging.warning(f"[SEARCH] Local lookup failed for '{query.canonical}': {type(e).__name__}: {e}")
        return []
