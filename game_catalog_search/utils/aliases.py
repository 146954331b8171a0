from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import yaml

from ..config import SEARCH
from ..errors import ConfigError
from ..schema import NormalizedQuery, PlatformAliasEntry
from .normalize import normalize_query, tokenize

DEFAULT_ALIASES_PATH = Path(__file__).resolve().parent.parent / "data" / "platform_aliases.yaml"


@dataclass(frozen=True)
class PlatformAliasTable:
    """
    Immutable set of platform aliases, ordered longest token sequence first.

    Build it once at startup (see `load_platform_aliases`) and pass it to `resolve_query`.
    """

    entries: tuple[PlatformAliasEntry, ...] = ()

    @classmethod
    def from_entries(cls, entries: Iterable[PlatformAliasEntry]) -> PlatformAliasTable:
        ordered = sorted(entries, key=lambda e: (-len(e.alias_tokens), e.alias))
        return cls(entries=tuple(ordered))

    def __len__(self) -> int:
        return len(self.entries)


EMPTY_ALIAS_TABLE = PlatformAliasTable()


def _as_id_set(values: Any) -> frozenset[int]:
    if not isinstance(values, list):
        return frozenset()
    return frozenset(v for v in values if isinstance(v, int) and not isinstance(v, bool))


def _as_name_set(values: Any) -> frozenset[str]:
    if not isinstance(values, list):
        return frozenset()
    return frozenset(str(v).strip() for v in values if str(v or "").strip())


def parse_platform_aliases(data: Any) -> PlatformAliasTable:
    if not isinstance(data, dict):
        raise ConfigError("Platform alias table must be a mapping with an 'aliases' list")
    items = data.get("aliases") or []
    if not isinstance(items, list):
        raise ConfigError("Platform alias table 'aliases' must be a list")

    entries: list[PlatformAliasEntry] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        tokens = tuple(tokenize(normalize_query(item.get("alias"))))
        ids = _as_id_set(item.get("igdb_ids"))
        names = _as_name_set(item.get("names"))
        if not tokens or not (ids or names):
            logging.warning(f"[ALIASES] Skipping unusable alias entry: {item!r}")
            continue
        entries.append(PlatformAliasEntry(alias_tokens=tokens, platform_ids=ids, platform_names=names))
    return PlatformAliasTable.from_entries(entries)


def load_platform_aliases(path: str | Path | None = None) -> PlatformAliasTable:
    p = Path(path) if path is not None else DEFAULT_ALIASES_PATH
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    table = parse_platform_aliases(data)
    logging.debug(f"[ALIASES] Loaded {len(table)} platform aliases from {p}")
    return table


def _matches_at(tokens: list[str], consumed: list[bool], alias: tuple[str, ...], start: int) -> bool:
    for offset, want in enumerate(alias):
        pos = start + offset
        if consumed[pos] or tokens[pos] != want:
            return False
    return True


def resolve_platforms(
    tokens: list[str], table: PlatformAliasTable
) -> tuple[list[str], frozenset[int], frozenset[str]]:
    """
    Consume platform alias phrases out of a token list.

    Returns (remaining tokens in original order, platform ids, platform names). A position consumed
    by a longer alias is never claimed again by a shorter one.
    """
    consumed = [False] * len(tokens)
    ids: set[int] = set()
    names: set[str] = set()

    for entry in table.entries:
        width = len(entry.alias_tokens)
        for start in range(0, len(tokens) - width + 1):
            if not _matches_at(tokens, consumed, entry.alias_tokens, start):
                continue
            for pos in range(start, start + width):
                consumed[pos] = True
            ids.update(entry.platform_ids)
            names.update(entry.platform_names)

    remaining = [t for t, used in zip(tokens, consumed) if not used]
    return remaining, frozenset(ids), frozenset(names)


def resolve_query(raw: str | None, table: PlatformAliasTable = EMPTY_ALIAS_TABLE) -> NormalizedQuery | None:
    """
    Normalize a raw search string and split it into free text and platform filters.

    Returns None when the query is empty or shorter than the minimum length; callers treat that as
    "no results" without querying any source.
    """
    canonical = normalize_query(raw)
    if len(canonical) < SEARCH.min_query_length:
        return None

    remaining, ids, names = resolve_platforms(tokenize(canonical), table)
    return NormalizedQuery(
        canonical=canonical,
        free_text=" ".join(remaining),
        tokens=frozenset(remaining),
        platform_ids=ids,
        platform_names=names,
    )
