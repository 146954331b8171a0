from __future__ import annotations

import logging
import os
import random
import threading
import time
from pathlib import Path
from typing import Any, Callable

import pandas as pd
import requests
import yaml

from ..config import RETRY
from ..errors import ConfigError

# ----------------------------
# CSV
# ----------------------------


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(p, index=False, encoding="utf-8")


# ----------------------------
# Rate limiting + retries
# ----------------------------


class RateLimiter:
    """
    Simple rate limiter: enforces minimum interval between requests.

    Safe to share between the worker threads of one search executor.
    """

    def __init__(self, min_interval_s: float = 1.0):
        self.min_interval_s = float(min_interval_s)
        self._last = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            # Use monotonic time to avoid issues if the system clock changes.
            now = time.monotonic()
            delta = now - self._last
            if delta < self.min_interval_s:
                time.sleep(self.min_interval_s - delta)
            self._last = time.monotonic()


_NETWORK_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.SSLError,
)


def _retry_after_s(exc: BaseException) -> float | None:
    resp = getattr(exc, "response", None)
    if getattr(resp, "status_code", None) != 429:
        return None
    headers = getattr(resp, "headers", {}) or {}
    raw = str(headers.get("Retry-After", "") or "").strip()
    try:
        return float(raw) if raw else RETRY.http_429_default_retry_after_s
    except ValueError:
        return RETRY.http_429_default_retry_after_s


_STATS_LOCK = threading.Lock()


def bump_stat(stats: dict[str, Any] | None, key: str, n: int = 1) -> None:
    """
    Add `n` to a request counter. Counters are shared by the search worker threads.
    """
    if stats is None:
        return
    with _STATS_LOCK:
        stats[key] = int(stats.get(key, 0) or 0) + int(n)


def with_retries(
    fn: Callable[[], Any],
    *,
    retries: int = RETRY.retries,
    base_sleep_s: float = RETRY.base_sleep_s,
    jitter_s: float = RETRY.jitter_s,
    retry_on: tuple[type, ...] = (requests.exceptions.RequestException, ValueError),
    on_fail_return: Any = None,
    context: str | None = None,
    retry_stats: dict[str, Any] | None = None,
) -> Any:
    """
    Execute fn with retries and exponential backoff.

    Returns `on_fail_return` once all attempts failed. `ValueError` covers undecodable JSON bodies.
    """
    for attempt in range(retries):
        try:
            return fn()
        except retry_on as e:
            is_http = isinstance(e, requests.exceptions.HTTPError)
            is_network = isinstance(e, _NETWORK_ERRORS)
            retry_after_s = _retry_after_s(e) if is_http else None
            if retry_after_s is not None:
                bump_stat(retry_stats, "http_429")
            if is_network:
                bump_stat(retry_stats, "network_errors")
            if is_http:
                bump_stat(retry_stats, "http_errors")

            if attempt == retries - 1:
                if context:
                    # Keep network-offline situations distinct from provider "not found" cases.
                    if is_network:
                        logging.error(f"[NETWORK] {context}: {type(e).__name__}: {e}")
                    elif is_http:
                        logging.error(f"[HTTP] {context}: {type(e).__name__}: {e}")
                    else:
                        logging.error(f"[REQUEST] {context}: {type(e).__name__}: {e}")
                if is_network:
                    bump_stat(retry_stats, "network_failures")
                if is_http:
                    bump_stat(retry_stats, "http_failures")
                return on_fail_return

            sleep = base_sleep_s * (2**attempt) + random.uniform(0, jitter_s)
            if retry_after_s is not None and retry_after_s > 0:
                sleep = max(sleep, retry_after_s)
            bump_stat(retry_stats, "retry_attempts")
            time.sleep(sleep)
    return on_fail_return


# ----------------------------
# Credentials loading
# ----------------------------

_ENV_OVERRIDES = {
    "client_id": "IGDB_CLIENT_ID",
    "access_token": "IGDB_ACCESS_TOKEN",
    "client_secret": "IGDB_CLIENT_SECRET",
}


def default_credentials_path() -> Path:
    root = Path(__file__).resolve().parent.parent.parent
    return root / "data" / "credentials.yaml"


def load_credentials(credentials_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load credentials from a YAML file, then apply IGDB_* environment overrides.

    Args:
        credentials_path: Path to credentials.yaml file. If None, looks for
                         data/credentials.yaml in the project root.

    Returns:
        Dictionary with credentials, e.g. {'igdb': {'client_id': ..., 'access_token': ...}}.
        A missing file is not an error: the remote catalog is then simply disabled unless the
        environment provides credentials.
    """
    path = Path(credentials_path) if credentials_path is not None else default_credentials_path()

    data: dict[str, Any] = {}
    if path.exists():
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Credentials file must contain a mapping: {path}")
        data = loaded

    igdb = dict(data.get("igdb") or {})
    for key, env_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name, "").strip()
        if value:
            igdb[key] = value
    data["igdb"] = igdb
    return data
