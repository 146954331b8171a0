from __future__ import annotations

import logging
from typing import Iterable, Iterator

from sqlalchemy import func, or_
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from ..errors import UpsertError
from ..schema import CatalogRecord, GameDetails, StoredGame
from ..utils.normalize import normalize_query
from .db import Base, make_engine, make_session_factory
from .models import (
    Developer,
    Game,
    GameDeveloper,
    GamePlatform,
    GamePublisher,
    Platform,
    Publisher,
    Screenshot,
)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _snapshot(game: Game) -> StoredGame:
    return StoredGame(
        id=int(game.id),
        igdb_id=int(game.igdb_id) if game.igdb_id is not None else None,
        title=str(game.title or ""),
        release_year=int(game.release_year or 0),
        cover_url=str(game.cover_url or ""),
    )


def _join_names(names: Iterable[str]) -> str | None:
    items = sorted(n for n in names if n)
    return ", ".join(items) if items else None


def _details(game: Game) -> GameDetails:
    cover = str(game.cover_url or "")
    return GameDetails(
        igdb_id=int(game.igdb_id if game.igdb_id is not None else game.id),
        title=str(game.title or ""),
        overview=game.overview or None,
        release_year=game.release_year if (game.release_year or 0) > 0 else None,
        cover_url=cover if cover.strip() else None,
        screenshots=[s.url for s in game.screenshots],
        platforms=_join_names(link.platform.name for link in game.platforms),
        developers=_join_names(link.developer.name for link in game.developers),
        publishers=_join_names(link.publisher.name for link in game.publishers),
    )


class CatalogStore:
    """
    Local game catalog backed by SQLAlchemy.

    Every public method opens and closes its own session, so one store can be shared by the
    worker threads of a search executor.
    """

    def __init__(self, session_factory: sessionmaker, engine: Engine | None = None):
        self._session_factory = session_factory
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> CatalogStore:
        engine = make_engine(database_url)
        return cls(make_session_factory(engine), engine=engine)

    def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("CatalogStore was built without an engine; cannot create tables")
        Base.metadata.create_all(self.engine)

    # -------------------------------------------------
    # Reads
    # -------------------------------------------------
    def find_candidates(
        self, tokens: Iterable[str], platform_names: Iterable[str] | None = None
    ) -> list[StoredGame]:
        """
        Broad over-fetch: games whose normalized title contains ANY token, optionally
        restricted to games linked to at least one of `platform_names`.
        """
        words = sorted({t for t in tokens if t})
        if not words:
            return []
        names = sorted({n for n in (platform_names or []) if n})
        with self._session_factory() as session:
            q = session.query(Game).filter(Game.igdb_id.isnot(None))
            q = q.filter(or_(*[Game.search_title.like(f"%{_escape_like(w)}%", escape="\\") for w in words]))
            if names:
                q = q.filter(Game.platforms.any(GamePlatform.platform.has(Platform.name.in_(names))))
            return [_snapshot(g) for g in q.all()]

    def find_by_platforms(self, platform_names: Iterable[str], *, limit: int) -> list[StoredGame]:
        names = sorted({n for n in platform_names if n})
        if not names:
            return []
        with self._session_factory() as session:
            q = (
                session.query(Game)
                .filter(Game.igdb_id.isnot(None))
                .filter(Game.platforms.any(GamePlatform.platform.has(Platform.name.in_(names))))
                .order_by(func.lower(Game.title), Game.igdb_id)
                .limit(limit)
            )
            return [_snapshot(g) for g in q.all()]

    def get_by_igdb_id(self, igdb_id: int) -> StoredGame | None:
        with self._session_factory() as session:
            game = session.query(Game).filter(Game.igdb_id == igdb_id).one_or_none()
            return _snapshot(game) if game is not None else None

    def _details_query(self, session: Session):
        return session.query(Game).options(
            selectinload(Game.screenshots),
            selectinload(Game.platforms).selectinload(GamePlatform.platform),
            selectinload(Game.developers).selectinload(GameDeveloper.developer),
            selectinload(Game.publishers).selectinload(GamePublisher.publisher),
        )

    def get_game_details(self, igdb_id: int) -> GameDetails | None:
        with self._session_factory() as session:
            game = self._details_query(session).filter(Game.igdb_id == igdb_id).one_or_none()
            return _details(game) if game is not None else None

    def iter_games(self) -> Iterator[GameDetails]:
        with self._session_factory() as session:
            for game in self._details_query(session).order_by(Game.id).all():
                yield _details(game)

    # -------------------------------------------------
    # Writes (record upsert)
    # -------------------------------------------------
    @staticmethod
    def _get_or_create(session: Session, model: type, name: str):
        existing = session.query(model).filter(model.name == name).one_or_none()
        if existing is not None:
            return existing
        obj = model(name=name)
        session.add(obj)
        session.flush()
        return obj

    @staticmethod
    def _link(session: Session, model: type, fk: str, game_id: int, related_ids: list[int]) -> int:
        column = getattr(model, fk)
        existing = {row[0] for row in session.query(column).filter(model.game_id == game_id).all()}
        added = 0
        for rid in related_ids:
            if rid in existing:
                continue
            session.add(model(game_id=game_id, **{fk: rid}))
            existing.add(rid)
            added += 1
        return added

    @staticmethod
    def _replace_screenshots(session: Session, game_id: int, urls: list[str]) -> None:
        session.query(Screenshot).filter(Screenshot.game_id == game_id).delete(synchronize_session=False)
        for url in urls:
            session.add(Screenshot(game_id=game_id, url=url))

    def upsert_record(self, record: CatalogRecord) -> StoredGame:
        """
        Create or refresh a game keyed by IGDB id, with its related names and screenshots.

        Runs in a single transaction. Links are only ever added (existing ones are kept);
        screenshots are replaced wholesale. Raises UpsertError after rolling back on any failure.
        """
        session = self._session_factory()
        try:
            values = {
                "title": record.title,
                "search_title": normalize_query(record.title),
                "overview": record.overview or "",
                "release_year": record.release_year or 0,
                "cover_url": record.cover_url or "",
            }
            game = session.query(Game).filter(Game.igdb_id == record.igdb_id).one_or_none()
            created = game is None
            if game is None:
                game = Game(igdb_id=record.igdb_id, **values)
                session.add(game)
            else:
                for key, value in values.items():
                    setattr(game, key, value)
            session.flush()

            platforms = [self._get_or_create(session, Platform, n) for n in record.platform_names]
            developers = [self._get_or_create(session, Developer, n) for n in record.developer_names]
            publishers = [self._get_or_create(session, Publisher, n) for n in record.publisher_names]

            links = self._link(session, GamePlatform, "platform_id", game.id, [p.id for p in platforms])
            links += self._link(session, GameDeveloper, "developer_id", game.id, [d.id for d in developers])
            links += self._link(session, GamePublisher, "publisher_id", game.id, [p.id for p in publishers])

            self._replace_screenshots(session, game.id, record.screenshot_urls)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logging.error(f"[STORE] Upsert failed for IGDB id={record.igdb_id}: {type(e).__name__}: {e}")
            raise UpsertError(record.igdb_id, f"{type(e).__name__}: {e}") from e
        else:
            logging.info(
                f"[STORE] {'Created' if created else 'Updated'} '{record.title}' (igdb_id={record.igdb_id}, "
                f"new_links={links}, screenshots={len(record.screenshot_urls)})"
            )
            return _snapshot(game)
        finally:
            session.close()
