from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Category(str, Enum):
    """Coarse release type exposed to callers."""

    MAIN = "Main"
    REMAKE = "Remake"
    PORT = "Port"


# IGDB game_type codes -> Category. Codes missing here are not searchable.
IGDB_GAME_TYPES: dict[int, Category] = {
    0: Category.MAIN,
    8: Category.REMAKE,
    11: Category.PORT,
}


def category_from_game_type(value: object) -> Category | None:
    if value is None or isinstance(value, bool) or not isinstance(value, int):
        return None
    return IGDB_GAME_TYPES.get(value)


@dataclass(frozen=True)
class SearchResult:
    igdb_id: int
    title: str
    release_year: int | None
    cover_url: str | None
    category: Category

    def to_dict(self) -> dict[str, Any]:
        return {
            "igdb_id": self.igdb_id,
            "title": self.title,
            "release_year": self.release_year,
            "cover_url": self.cover_url,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class PlatformAliasEntry:
    alias_tokens: tuple[str, ...]
    platform_ids: frozenset[int]
    platform_names: frozenset[str]

    @property
    def alias(self) -> str:
        return " ".join(self.alias_tokens)


@dataclass(frozen=True)
class NormalizedQuery:
    """
    One search request after normalization and platform alias resolution.

    `free_text` and `tokens` only contain words that were not consumed by a platform alias.
    """

    canonical: str
    free_text: str
    tokens: frozenset[str]
    platform_ids: frozenset[int] = frozenset()
    platform_names: frozenset[str] = frozenset()

    @property
    def platform_only(self) -> bool:
        return not self.tokens and bool(self.platform_ids or self.platform_names)


@dataclass(frozen=True)
class StoredGame:
    """Detached snapshot of a locally stored game row."""

    id: int
    igdb_id: int | None
    title: str
    release_year: int
    cover_url: str


@dataclass
class ScoredCandidate:
    record: StoredGame
    score: int = 0
    matched_token_count: int = 0


@dataclass
class CatalogRecord:
    """Remote IGDB game projected into the shape the local store persists."""

    igdb_id: int
    title: str
    overview: str = ""
    release_year: int | None = None
    cover_url: str | None = None
    screenshot_urls: list[str] = field(default_factory=list)
    platform_names: list[str] = field(default_factory=list)
    developer_names: list[str] = field(default_factory=list)
    publisher_names: list[str] = field(default_factory=list)
    category: Category | None = None


@dataclass(frozen=True)
class GameDetails:
    igdb_id: int
    title: str
    overview: str | None
    release_year: int | None
    cover_url: str | None
    screenshots: list[str]
    platforms: str | None
    developers: str | None
    publishers: str | None
    source: str = "igdb"

    def to_dict(self) -> dict[str, Any]:
        return {
            "igdb_id": self.igdb_id,
            "title": self.title,
            "overview": self.overview,
            "release_year": self.release_year,
            "cover_url": self.cover_url,
            "screenshots": list(self.screenshots),
            "platforms": self.platforms,
            "developers": self.developers,
            "publishers": self.publishers,
            "source": self.source,
        }
