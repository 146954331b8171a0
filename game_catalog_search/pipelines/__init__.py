"""Search, resolve, seed and export pipelines over the local catalog and IGDB."""

from .resolve_pipeline import materialize_game, resolve_game
from .search_pipeline import CatalogSearch, merge_results
from .seed_pipeline import SeedSummary, run_seed

__all__ = [
    "CatalogSearch",
    "SeedSummary",
    "materialize_game",
    "merge_results",
    "resolve_game",
    "run_seed",
]
