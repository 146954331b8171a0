from __future__ import annotations


class CatalogSearchError(Exception):
    """Base class for errors surfaced to callers."""


class ConfigError(CatalogSearchError):
    """Alias table or credentials file has unusable content."""


class UpsertError(CatalogSearchError):
    """
    A write against the local store failed while materializing a record.

    The transaction is rolled back before this is raised, so no partial record is left behind.
    """

    def __init__(self, igdb_id: int, message: str):
        super().__init__(f"Failed to upsert IGDB game {igdb_id}: {message}")
        self.igdb_id = igdb_id
