from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..clients import IGDBClient
from ..config import IGDB, STORE
from ..store import CatalogStore
from ..utils.aliases import PlatformAliasTable, load_platform_aliases
from ..utils.utilities import load_credentials


def build_igdb_client(credentials: dict[str, Any]) -> IGDBClient | None:
    """
    IGDB client from the `igdb` credentials section, or None when it cannot authenticate.
    """
    igdb = credentials.get("igdb", {}) or {}
    client_id = str(igdb.get("client_id", "") or "").strip()
    token = str(igdb.get("access_token", "") or "").strip()
    secret = str(igdb.get("client_secret", "") or "").strip()
    if not client_id or not (token or secret):
        logging.info("[IGDB] No credentials configured; remote catalog disabled")
        return None
    return IGDBClient(
        client_id=client_id,
        access_token=token or None,
        client_secret=secret or None,
        min_interval_s=IGDB.min_interval_s,
    )


def resolve_database_url(database_url: str | None) -> str:
    if database_url:
        return database_url
    return os.environ.get("DATABASE_URL", "").strip() or STORE.database_url


@dataclass(frozen=True)
class PipelineContext:
    database_url: str | None = None
    credentials_path: Path | None = None
    aliases_path: Path | None = None

    def credentials(self) -> dict[str, Any]:
        return load_credentials(self.credentials_path)

    def build_store(self) -> CatalogStore:
        return CatalogStore.from_url(resolve_database_url(self.database_url))

    def build_client(self) -> IGDBClient | None:
        return build_igdb_client(self.credentials())

    def build_aliases(self) -> PlatformAliasTable:
        return load_platform_aliases(self.aliases_path)
