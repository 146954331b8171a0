from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from ..store import CatalogStore
from ..utils.utilities import write_csv

EXPORT_COLUMNS = [
    "igdb_id",
    "title",
    "release_year",
    "platforms",
    "developers",
    "publishers",
    "cover_url",
    "screenshots",
    "overview",
    "source",
]


def catalog_frame(store: CatalogStore) -> pd.DataFrame:
    """
    One row per stored game; screenshot URLs are joined with ", " like the other name lists.
    """
    rows = []
    for details in store.iter_games():
        row = details.to_dict()
        row["screenshots"] = ", ".join(row["screenshots"])
        rows.append(row)
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    if not df.empty:
        df["release_year"] = df["release_year"].astype("Int64")
    return df


def export_catalog(store: CatalogStore, output_csv: Path) -> int:
    df = catalog_frame(store)
    write_csv(df, output_csv)
    logging.info(f"[EXPORT] Wrote {len(df)} games to {output_csv}")
    return len(df)
