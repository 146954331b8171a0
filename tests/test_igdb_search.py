from __future__ import annotations


def _client():
    from game_catalog_search.clients.igdb_client import IGDBClient

    return IGDBClient(client_id="x", access_token="token", min_interval_s=0.0)


def _resp(status_code, payload):
    class Resp:
        headers = {}

        def __init__(self):
            self.status_code = status_code

        def raise_for_status(self):
            if self.status_code >= 400:
                import requests

                e = requests.exceptions.HTTPError(f"{self.status_code}")
                e.response = self
                raise e
            return None

        def json(self):
            return payload

    return Resp()


def test_search_query_filters_types_and_platforms() -> None:
    from game_catalog_search.clients.igdb_client import IGDBClient

    q = IGDBClient.build_search_query("Final Fantasy VII", frozenset({48, 6}))
    assert q.startswith("fields id,name,first_release_date,cover.url,game_type;")
    assert 'search "final fantasy";' in q
    assert "game_type = (0,8,11)" in q
    assert 'name ~ *"final fantasy vii"*' in q
    assert "platforms = (6,48)" in q
    assert q.endswith("limit 20;")


def test_search_query_uses_normalized_text() -> None:
    from game_catalog_search.clients.igdb_client import IGDBClient

    q = IGDBClient.build_search_query('Baldur"s Gate')
    assert 'search "baldur s gate";' in q
    assert "platforms" not in q


def test_search_maps_results(monkeypatch) -> None:
    from game_catalog_search.schema import Category
    from game_catalog_search.utils.aliases import resolve_query
    from game_catalog_search.pipelines.remote_search import search_remote

    bodies: list[str] = []

    def fake_post(_self, url, headers=None, data=None, timeout=None):
        assert url.endswith("/v4/games")
        assert headers["Client-ID"] == "x"
        assert headers["Authorization"] == "Bearer token"
        bodies.append(str(data))
        return _resp(
            200,
            [
                {
                    "id": 1026,
                    "name": "The Legend of Zelda: Ocarina of Time",
                    "first_release_date": 911606400,
                    "cover": {"url": "//images.igdb.com/igdb/image/upload/t_thumb/co3nnx.jpg"},
                    "game_type": 0,
                },
                {"id": 113112, "name": "Zelda Remake", "game_type": 8},
                {"id": 5, "name": "", "game_type": 0},
                {"id": 6, "name": "Zelda DLC", "game_type": 1},
                "garbage",
            ],
        )

    monkeypatch.setattr("requests.sessions.Session.post", fake_post)

    results = search_remote(_client(), resolve_query("zelda"))
    assert len(bodies) == 1
    assert [r.igdb_id for r in results] == [1026, 113112]

    first = results[0]
    assert first.title == "The Legend of Zelda: Ocarina of Time"
    assert first.release_year == 1998
    assert first.cover_url == "https://images.igdb.com/igdb/image/upload/t_cover_big/co3nnx.jpg"
    assert first.category is Category.MAIN

    second = results[1]
    assert second.release_year is None
    assert second.cover_url is None
    assert second.category is Category.REMAKE


def test_search_without_credentials_returns_empty(monkeypatch) -> None:
    from game_catalog_search.clients.igdb_client import IGDBClient

    def fake_post(*_args, **_kwargs):
        raise AssertionError("no request expected without credentials")

    monkeypatch.setattr("requests.sessions.Session.post", fake_post)

    client = IGDBClient(client_id="", min_interval_s=0.0)
    assert not client.enabled
    assert client.search_games("zelda") == []


def test_search_http_error_returns_empty(monkeypatch) -> None:
    monkeypatch.setattr("time.sleep", lambda _s: None)
    calls = {"n": 0}

    def fake_post(_self, url, headers=None, data=None, timeout=None):
        calls["n"] += 1
        return _resp(503, {"message": "unavailable"})

    monkeypatch.setattr("requests.sessions.Session.post", fake_post)

    client = _client()
    assert client.search_games("zelda") == []
    # Interactive search makes a single attempt.
    assert calls["n"] == 1


def test_search_bad_request_returns_empty(monkeypatch) -> None:
    def fake_post(_self, url, headers=None, data=None, timeout=None):
        return _resp(400, [{"title": "Syntax Error"}])

    monkeypatch.setattr("requests.sessions.Session.post", fake_post)

    assert _client().search_games("zelda") == []


def test_search_network_error_returns_empty(monkeypatch) -> None:
    import requests

    def fake_post(_self, url, headers=None, data=None, timeout=None):
        raise requests.exceptions.ConnectionError("offline")

    monkeypatch.setattr("requests.sessions.Session.post", fake_post)

    assert _client().search_games("zelda") == []


def test_search_skipped_when_cancelled(monkeypatch) -> None:
    import threading

    def fake_post(*_args, **_kwargs):
        raise AssertionError("no request expected after cancellation")

    monkeypatch.setattr("requests.sessions.Session.post", fake_post)

    cancel = threading.Event()
    cancel.set()
    assert _client().search_games("zelda", cancel=cancel) == []


def test_token_acquired_with_client_secret(monkeypatch) -> None:
    from game_catalog_search.clients.igdb_client import IGDBClient

    urls: list[str] = []

    def fake_post(_self, url, headers=None, data=None, timeout=None):
        urls.append(url)
        if "oauth2/token" in url:
            assert data["grant_type"] == "client_credentials"
            return _resp(200, {"access_token": "fresh"})
        assert headers["Authorization"] == "Bearer fresh"
        return _resp(200, [])

    monkeypatch.setattr("requests.sessions.Session.post", fake_post)

    client = IGDBClient(client_id="x", client_secret="s", min_interval_s=0.0)
    assert client.search_games("zelda") == []
    assert client.search_games("mario") == []
    assert sum(1 for u in urls if "oauth2/token" in u) == 1
    assert client.stats["http_oauth_token"] == 1


def test_request_counters_are_exact_under_concurrent_searches(monkeypatch) -> None:
    from concurrent.futures import ThreadPoolExecutor

    def fake_post(_self, url, headers=None, data=None, timeout=None):
        return _resp(200, [{"id": 1, "name": "Doom", "game_type": 0}])

    monkeypatch.setattr("requests.sessions.Session.post", fake_post)

    client = _client()
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _i: client.search_games("doom"), range(200)))

    assert client.stats["search_requests"] == 200
    assert client.stats["search_results"] == 200
    assert client.stats["http_post"] == 200


def test_bump_stat_is_thread_safe() -> None:
    import threading

    from game_catalog_search.utils.utilities import bump_stat

    stats: dict[str, int] = {}

    def worker():
        for _ in range(2000):
            bump_stat(stats, "n")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert stats["n"] == 16000
    bump_stat(None, "n")
