"""Local persisted game catalog."""

from .repository import CatalogStore

__all__ = ["CatalogStore"]
