from __future__ import annotations

import pytest


def _store(tmp_path):
    from game_catalog_search.store import CatalogStore

    store = CatalogStore.from_url(f"sqlite:///{tmp_path / 'catalog.db'}")
    store.create_all()
    return store


class PagedClient:
    def __init__(self, total, *, fail_at_offset=None):
        self.total = total
        self.fail_at_offset = fail_at_offset
        self.requests: list[tuple[int, int, str, str]] = []

    def list_games(self, *, limit, offset, where="name != null", sort="id asc"):
        self.requests.append((limit, offset, where, sort))
        if offset == self.fail_at_offset:
            return None
        ids = range(offset + 1, min(offset + limit, self.total) + 1)
        # Every fifth game has no title and must be skipped.
        return [{"id": i, "name": "" if i % 5 == 0 else f"Game {i}", "game_type": 0} for i in ids]


def test_seed_stops_on_short_page(tmp_path, monkeypatch) -> None:
    from game_catalog_search.pipelines.seed_pipeline import run_seed

    sleeps: list[float] = []
    monkeypatch.setattr("time.sleep", lambda s: sleeps.append(s))

    store = _store(tmp_path)
    client = PagedClient(total=12)
    summary = run_seed(store=store, client=client, limit=5, max_batches=10, max_games=0, delay_ms=100)

    assert [r[1] for r in client.requests] == [0, 5, 10]
    assert summary.batches == 3
    assert summary.fetched == 12
    assert summary.skipped == 2
    assert summary.stored == 10
    assert sleeps == [0.1, 0.1]
    assert store.get_by_igdb_id(5) is None
    assert store.get_by_igdb_id(12).title == "Game 12"


def test_seed_honours_max_games_and_query_options(tmp_path, monkeypatch) -> None:
    from game_catalog_search.pipelines.seed_pipeline import run_seed

    monkeypatch.setattr("time.sleep", lambda _s: None)

    store = _store(tmp_path)
    client = PagedClient(total=1000)
    summary = run_seed(
        store=store,
        client=client,
        limit=10,
        max_batches=5,
        offset=100,
        max_games=3,
        where="rating > 80",
        sort="rating desc",
    )

    assert client.requests == [(10, 100, "rating > 80", "rating desc")]
    assert summary.stored == 3
    assert [g.igdb_id for g in store.iter_games()] == [101, 102, 103]


def test_seed_failed_page_raises(tmp_path, monkeypatch) -> None:
    from game_catalog_search.pipelines.seed_pipeline import run_seed

    monkeypatch.setattr("time.sleep", lambda _s: None)

    store = _store(tmp_path)
    client = PagedClient(total=100, fail_at_offset=10)
    with pytest.raises(RuntimeError):
        run_seed(store=store, client=client, limit=10, max_batches=3, max_games=0)
    # The first page was stored before the failure.
    assert store.get_by_igdb_id(1) is not None
