"""API clients for game data sources."""

from .igdb_client import IGDBClient

__all__ = [
    "IGDBClient",
]
