"""Game Catalog Search - local-first game search backed by IGDB."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("game-catalog-search")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"
