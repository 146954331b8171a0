from __future__ import annotations

import logging
import threading
from typing import Any

import requests

from ..config import IGDB, REQUEST
from ..utils.normalize import loose_query, normalize_query
from ..utils.utilities import RateLimiter, bump_stat
from .http_client import HTTPJSONClient, RequestPolicy, format_timing
from .parse import as_int

_IGDB_BAD_REQUEST = object()

SEARCH_FIELDS = "id,name,first_release_date,cover.url,game_type"
RECORD_FIELDS = (
    "id,name,summary,first_release_date,cover.url,game_type,"
    "platforms.name,screenshots.url,"
    "involved_companies.company.name,involved_companies.developer,involved_companies.publisher"
)


def _escape(text: str) -> str:
    # IGDB's query DSL quotes strings with `"`; escape backslashes first.
    return text.replace("\\", "\\\\").replace('"', '\\"')


class IGDBClient:
    """
    IGDB v4 `games` endpoint client.

    Credentials: a client id plus either a ready app access token or a client secret (the token is
    then acquired lazily through Twitch's client-credentials flow). Without credentials every call
    returns an empty answer instead of failing.
    """

    def __init__(
        self,
        client_id: str,
        access_token: str | None = None,
        client_secret: str | None = None,
        language: str = "en",
        min_interval_s: float = IGDB.min_interval_s,
        search_timeout_s: float = IGDB.search_request_timeout_s,
    ):
        self._session = requests.Session()
        self.client_id = (client_id or "").strip()
        self.client_secret = (client_secret or "").strip()
        self.language = (language or "en").strip() or "en"
        self.stats: dict[str, int] = {
            "search_requests": 0,
            "search_results": 0,
            "by_id_fetch": 0,
            "by_id_missing": 0,
            "list_requests": 0,
            # HTTP request counters (attempts, including retries).
            "http_oauth_token": 0,
            "http_post": 0,
        }
        self.ratelimiter = RateLimiter(min_interval_s=min_interval_s)
        self._http = HTTPJSONClient(self._session, stats=self.stats, ratelimiter=self.ratelimiter)
        # Search must answer inside the pipeline deadline: one attempt, short timeout.
        self._search_policy = RequestPolicy(timeout_s=search_timeout_s, retries=1, context_prefix="IGDB POST")
        self._lookup_policy = RequestPolicy(context_prefix="IGDB POST")

        self._token: str | None = (access_token or "").strip() or None
        self._token_lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self.client_id and (self._token or self.client_secret))

    # -------------------------------------------------
    # OAuth
    # -------------------------------------------------
    def _ensure_token(self) -> bool:
        if self._token:
            return True
        if not self.client_id or not self.client_secret:
            return False

        with self._token_lock:
            if self._token:
                return True
            # Use form-encoded body (not URL params) to avoid leaking secrets in tracebacks/logs.
            bump_stat(self.stats, "http_oauth_token")
            try:
                r = self._session.post(
                    IGDB.token_url,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "grant_type": "client_credentials",
                    },
                    timeout=REQUEST.timeout_s,
                )
                r.raise_for_status()
                token = str(r.json().get("access_token") or "").strip()
            except (requests.exceptions.RequestException, ValueError) as e:
                logging.error(f"[IGDB] OAuth token request failed: {type(e).__name__}: {e}")
                return False
            if not token:
                logging.error("[IGDB] OAuth token response did not include an access_token")
                return False
            self._token = token
            return True

    def _headers(self) -> dict[str, str]:
        headers = {
            "Client-ID": self.client_id,
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
            "Content-Type": "text/plain",
        }
        if self.language:
            headers["Accept-Language"] = self.language
        return headers

    # -------------------------------------------------
    # Helpers IGDB
    # -------------------------------------------------
    def _post(
        self, policy: RequestPolicy, query: str, *, context: str
    ) -> list[dict[str, Any]] | None:
        if not self._ensure_token():
            logging.warning(
                f"[IGDB] Credentials missing (client_id={bool(self.client_id)}, "
                f"token_or_secret={bool(self._token or self.client_secret)}); skipping {context}"
            )
            return None
        resp = self._http.post_json(
            f"{IGDB.api_url}/games",
            policy=policy,
            body=query,
            headers=self._headers(),
            status_handlers={400: _IGDB_BAD_REQUEST},
            context=context,
            on_fail_return=None,
        )
        if resp is _IGDB_BAD_REQUEST:
            logging.error(f"[HTTP] IGDB POST: {context}: 400 Bad Request (query rejected)")
            return None
        if resp is None:
            return None
        if not isinstance(resp, list):
            logging.warning(f"[IGDB] Unexpected response shape for {context}: {type(resp).__name__}")
            return None
        return [it for it in resp if isinstance(it, dict)]

    @staticmethod
    def build_search_query(text: str, platform_ids: frozenset[int] | set[int] | None = None) -> str:
        """
        Build the Apicalypse body for a title search.

        The `search` term uses the loose query (trailing sequel number dropped) so numbered
        entries of a series still surface; the `name ~` clause keeps results anchored to the text.
        """
        full = normalize_query(text)
        loose = loose_query(full)
        patterns: list[str] = []
        for p in (full, loose):
            if p and p not in patterns:
                patterns.append(p)

        where_parts = [
            "name != null",
            f"game_type = ({','.join(str(c) for c in IGDB.search_game_types)})",
        ]
        if patterns:
            where_parts.append("(" + " | ".join(f'name ~ *"{_escape(p)}"*' for p in patterns) + ")")
        if platform_ids:
            where_parts.append(f"platforms = ({','.join(str(i) for i in sorted(platform_ids))})")

        return (
            "; ".join(
                [
                    f"fields {SEARCH_FIELDS}",
                    f'search "{_escape(loose or full)}"',
                    f"where {' & '.join(where_parts)}",
                    f"limit {IGDB.search_limit}",
                ]
            )
            + ";"
        )

    # -------------------------------------------------
    # Public API
    # -------------------------------------------------
    def search_games(
        self,
        text: str,
        platform_ids: frozenset[int] | set[int] | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> list[dict[str, Any]]:
        """
        One search request, capped at `IGDB.search_limit` items; never raises.
        """
        if not normalize_query(text):
            return []
        if cancel is not None and cancel.is_set():
            return []
        bump_stat(self.stats, "search_requests")
        query = self.build_search_query(text, platform_ids)
        data = self._post(self._search_policy, query, context="/games search")
        if data is None:
            return []
        bump_stat(self.stats, "search_results", len(data))
        return data

    def get_game(self, igdb_id: int) -> dict[str, Any] | None:
        """
        Fetch the full IGDB game payload by id (richer field set than search).
        """
        gid = as_int(igdb_id)
        if gid is None or gid <= 0:
            return None
        query = f"fields {RECORD_FIELDS}; where id = {gid}; limit 1;"
        data = self._post(self._lookup_policy, query, context=f"/games id={gid}")
        bump_stat(self.stats, "by_id_fetch")
        if not data:
            bump_stat(self.stats, "by_id_missing")
            return None
        return data[0]

    def list_games(
        self,
        *,
        limit: int,
        offset: int,
        where: str = "name != null",
        sort: str = "id asc",
    ) -> list[dict[str, Any]] | None:
        """
        Fetch one page of full game payloads (used for bulk seeding). None on request failure.
        """
        query = (
            "; ".join(
                [
                    f"fields {RECORD_FIELDS}",
                    f"limit {int(limit)}",
                    f"offset {int(offset)}",
                    f"where {where}",
                    f"sort {sort}",
                ]
            )
            + ";"
        )
        bump_stat(self.stats, "list_requests")
        return self._post(self._lookup_policy, query, context=f"/games offset={offset}")

    def format_stats(self) -> str:
        s = self.stats
        return (
            f"search={s['search_requests']} (results={s['search_results']}), "
            f"by_id fetch={s['by_id_fetch']} (missing={s['by_id_missing']}), "
            f"list={s['list_requests']}, "
            f"http oauth={s['http_oauth_token']} {format_timing(s, key='http_post')}"
        )
