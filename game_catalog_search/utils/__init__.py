"""Utility helpers shared by the clients and pipelines."""

from .aliases import PlatformAliasTable, load_platform_aliases, resolve_query
from .normalize import loose_query, normalize_query, tokenize
from .progress import Progress
from .utilities import RateLimiter, load_credentials, with_retries, write_csv

__all__ = [
    "PlatformAliasTable",
    "Progress",
    "RateLimiter",
    "load_credentials",
    "load_platform_aliases",
    "loose_query",
    "normalize_query",
    "resolve_query",
    "tokenize",
    "with_retries",
    "write_csv",
]
