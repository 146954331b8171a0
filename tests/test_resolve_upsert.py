from __future__ import annotations

import pytest


def _store(tmp_path):
    from game_catalog_search.store import CatalogStore

    store = CatalogStore.from_url(f"sqlite:///{tmp_path / 'catalog.db'}")
    store.create_all()
    return store


def _payload(**overrides):
    game = {
        "id": 1942,
        "name": "The Witcher 3: Wild Hunt",
        "summary": "Geralt searches for Ciri.",
        "first_release_date": 1431993600,
        "game_type": 0,
        "cover": {"url": "//images.igdb.com/igdb/image/upload/t_thumb/co1wyy.jpg"},
        "platforms": [
            {"name": "PC (Microsoft Windows)"},
            {"name": "PlayStation 4"},
            {"name": "PC (Microsoft Windows)"},
        ],
        "screenshots": [
            {"url": "//images.igdb.com/igdb/image/upload/t_thumb/sc1.jpg"},
            {"url": "//images.igdb.com/igdb/image/upload/t_thumb/sc2.jpg"},
        ],
        "involved_companies": [
            {"company": {"name": "CD Projekt RED"}, "developer": True, "publisher": False},
            {"company": {"name": "CD Projekt"}, "developer": False, "publisher": True},
            {"company": {"name": "Bandai Namco"}, "developer": False, "publisher": True},
        ],
    }
    game.update(overrides)
    return game


class FakeClient:
    def __init__(self, payload):
        self.payload = payload
        self.calls = 0

    def get_game(self, igdb_id):
        self.calls += 1
        return self.payload


def _count(store, model):
    with store._session_factory() as session:
        return session.query(model).count()


def test_resolve_creates_full_record(tmp_path) -> None:
    from game_catalog_search.pipelines.resolve_pipeline import resolve_game

    store = _store(tmp_path)
    game = resolve_game(1942, store=store, client=FakeClient(_payload()))
    assert game is not None
    assert game.igdb_id == 1942
    assert game.title == "The Witcher 3: Wild Hunt"
    assert game.release_year == 2015

    details = store.get_game_details(1942)
    assert details.overview == "Geralt searches for Ciri."
    assert details.cover_url == "https://images.igdb.com/igdb/image/upload/t_cover_big_2x/co1wyy.jpg"
    assert details.screenshots == [
        "https://images.igdb.com/igdb/image/upload/t_screenshot_big/sc1.jpg",
        "https://images.igdb.com/igdb/image/upload/t_screenshot_big/sc2.jpg",
    ]
    assert details.platforms == "PC (Microsoft Windows), PlayStation 4"
    assert details.developers == "CD Projekt RED"
    assert details.publishers == "Bandai Namco, CD Projekt"
    assert details.source == "igdb"


def test_upsert_twice_leaves_identical_state(tmp_path) -> None:
    from game_catalog_search.pipelines.resolve_pipeline import materialize_game
    from game_catalog_search.store.models import (
        Developer,
        Game,
        GamePlatform,
        GamePublisher,
        Platform,
        Publisher,
        Screenshot,
    )

    store = _store(tmp_path)
    client = FakeClient(_payload())
    first = materialize_game(1942, store=store, client=client)
    before = store.get_game_details(1942)
    second = materialize_game(1942, store=store, client=client)
    after = store.get_game_details(1942)

    assert first.id == second.id
    assert before == after
    assert _count(store, Game) == 1
    assert _count(store, Platform) == 2
    assert _count(store, Developer) == 1
    assert _count(store, Publisher) == 2
    assert _count(store, GamePlatform) == 2
    assert _count(store, GamePublisher) == 2
    assert _count(store, Screenshot) == 2


def test_related_names_are_shared_between_games(tmp_path) -> None:
    from game_catalog_search.pipelines.resolve_pipeline import materialize_game
    from game_catalog_search.store.models import Platform, Publisher

    store = _store(tmp_path)
    materialize_game(1942, store=store, client=FakeClient(_payload()))
    materialize_game(
        1020,
        store=store,
        client=FakeClient(_payload(id=1020, name="Grand Theft Auto V", involved_companies=[])),
    )

    assert _count(store, Platform) == 2
    assert _count(store, Publisher) == 2
    assert store.get_game_details(1020).publishers is None


def test_refresh_replaces_scalars_and_screenshots(tmp_path) -> None:
    from game_catalog_search.pipelines.resolve_pipeline import resolve_game

    store = _store(tmp_path)
    resolve_game(1942, store=store, client=FakeClient(_payload()))

    updated = _payload(
        name="The Witcher 3: Wild Hunt - Complete Edition",
        screenshots=[{"url": "//images.igdb.com/igdb/image/upload/t_thumb/sc9.jpg"}],
        platforms=[{"name": "Nintendo Switch"}],
    )
    client = FakeClient(updated)

    # Without refresh the stored row is returned untouched.
    kept = resolve_game(1942, store=store, client=client)
    assert kept.title == "The Witcher 3: Wild Hunt"
    assert client.calls == 0

    refreshed = resolve_game(1942, store=store, client=client, refresh=True)
    assert refreshed.title == "The Witcher 3: Wild Hunt - Complete Edition"
    details = store.get_game_details(1942)
    assert details.screenshots == ["https://images.igdb.com/igdb/image/upload/t_screenshot_big/sc9.jpg"]
    # Platform links are only ever added.
    assert details.platforms == "Nintendo Switch, PC (Microsoft Windows), PlayStation 4"


def test_missing_title_writes_nothing(tmp_path) -> None:
    from game_catalog_search.pipelines.resolve_pipeline import resolve_game
    from game_catalog_search.store.models import Game, Platform

    store = _store(tmp_path)
    assert resolve_game(1942, store=store, client=FakeClient(_payload(name="   "))) is None
    assert resolve_game(1942, store=store, client=FakeClient(None)) is None
    assert _count(store, Game) == 0
    assert _count(store, Platform) == 0


def test_resolve_without_client_returns_none(tmp_path) -> None:
    from game_catalog_search.pipelines.resolve_pipeline import resolve_game

    assert resolve_game(1942, store=_store(tmp_path), client=None) is None


def test_write_failure_raises_and_rolls_back(tmp_path, monkeypatch) -> None:
    from sqlalchemy.exc import OperationalError

    from game_catalog_search.errors import UpsertError
    from game_catalog_search.pipelines.resolve_pipeline import materialize_game
    from game_catalog_search.store.models import Game, Platform
    from game_catalog_search.store.repository import CatalogStore

    store = _store(tmp_path)

    def broken_replace(session, game_id, urls):
        raise OperationalError("INSERT INTO screenshots", {}, Exception("disk I/O error"))

    monkeypatch.setattr(CatalogStore, "_replace_screenshots", staticmethod(broken_replace))

    with pytest.raises(UpsertError) as exc:
        materialize_game(1942, store=store, client=FakeClient(_payload()))
    assert exc.value.igdb_id == 1942
    assert _count(store, Game) == 0
    assert _count(store, Platform) == 0
