from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryConfig:
    retries: int = 3
    base_sleep_s: float = 1.0
    jitter_s: float = 0.3
    http_429_default_retry_after_s: float = 5.0


@dataclass(frozen=True)
class RequestConfig:
    timeout_s: int = 10


@dataclass(frozen=True)
class IGDBConfig:
    api_url: str = "https://api.igdb.com/v4"
    token_url: str = "https://id.twitch.tv/oauth2/token"
    min_interval_s: float = 0.3
    # Single page per search call; results beyond this are never fetched.
    search_limit: int = 20
    # IGDB game_type codes accepted in search: main game, remake, port.
    search_game_types: tuple[int, ...] = (0, 8, 11)
    # Search must answer well inside SEARCH.remote_timeout_s, so no retries there.
    search_request_timeout_s: float = 3.0
    search_cover_size: str = "t_cover_big"
    record_cover_size: str = "t_cover_big_2x"
    screenshot_size: str = "t_screenshot_big"
    seed_batch_size: int = 100
    seed_delay_ms: int = 350


@dataclass(frozen=True)
class SearchConfig:
    min_query_length: int = 2
    max_local_results: int = 50
    remote_timeout_s: float = 4.0
    cancel_poll_s: float = 0.05
    max_workers: int = 4


@dataclass(frozen=True)
class StoreConfig:
    database_url: str = "sqlite:///data/catalog.db"
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_s: int = 1800


RETRY = RetryConfig()
REQUEST = RequestConfig()
IGDB = IGDBConfig()
SEARCH = SearchConfig()
STORE = StoreConfig()


@dataclass(frozen=True)
class CLIConfig:
    progress_every_n: int = 100
    # Time-based progress logging for long seeding runs; 0 disables it.
    progress_min_interval_s: float = 10.0


CLI = CLIConfig()
