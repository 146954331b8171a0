from __future__ import annotations

import pytest


def _table(*entries):
    from game_catalog_search.utils.aliases import parse_platform_aliases

    return parse_platform_aliases({"aliases": list(entries)})


def _xbox_table():
    return _table(
        {"alias": "xbox", "igdb_ids": [11], "names": ["Xbox"]},
        {"alias": "xbox series", "igdb_ids": [169], "names": ["Xbox Series X|S"]},
        {"alias": "xbox series x s", "igdb_ids": [169], "names": ["Xbox Series X|S"]},
        {"alias": "xbox one", "igdb_ids": [49], "names": ["Xbox One"]},
    )


def test_table_is_ordered_longest_alias_first() -> None:
    table = _xbox_table()
    lengths = [len(e.alias_tokens) for e in table.entries]
    assert lengths == sorted(lengths, reverse=True)
    assert table.entries[0].alias == "xbox series x s"


def test_longest_alias_wins_over_shorter_prefix() -> None:
    from game_catalog_search.utils.aliases import resolve_query

    q = resolve_query("Halo Infinite Xbox Series X|S", _xbox_table())
    assert q is not None
    assert q.free_text == "halo infinite"
    assert q.tokens == frozenset({"halo", "infinite"})
    # "xbox" alone must not also fire on the consumed token.
    assert q.platform_ids == frozenset({169})
    assert q.platform_names == frozenset({"Xbox Series X|S"})


def test_multiple_platforms_are_unioned() -> None:
    from game_catalog_search.utils.aliases import resolve_query

    q = resolve_query("fifa xbox one xbox", _xbox_table())
    assert q is not None
    assert q.free_text == "fifa"
    assert q.platform_ids == frozenset({11, 49})


def test_query_with_only_platform_tokens_has_empty_free_text() -> None:
    from game_catalog_search.utils.aliases import resolve_query

    q = resolve_query("xbox one", _xbox_table())
    assert q is not None
    assert q.free_text == ""
    assert q.tokens == frozenset()
    assert q.platform_only


def test_alias_must_match_whole_tokens() -> None:
    from game_catalog_search.utils.aliases import resolve_query

    q = resolve_query("xboxer", _xbox_table())
    assert q is not None
    assert q.free_text == "xboxer"
    assert q.platform_ids == frozenset()


def test_bundled_table_resolves_common_platforms() -> None:
    from game_catalog_search.utils.aliases import load_platform_aliases, resolve_query

    table = load_platform_aliases()
    assert len(table) > 20

    q = resolve_query("Sonic Genesis", table)
    assert q is not None
    assert q.free_text == "sonic"
    assert 29 in q.platform_ids
    assert "Sega Mega Drive/Genesis" in q.platform_names

    q = resolve_query("zelda nintendo switch", table)
    assert q is not None
    assert q.free_text == "zelda"
    assert q.platform_ids == frozenset({130})


def test_unusable_entries_are_skipped() -> None:
    table = _table(
        {"alias": "", "igdb_ids": [1]},
        {"alias": "ps5"},
        "not a mapping",
        {"alias": "ps5", "igdb_ids": [167], "names": ["PlayStation 5"]},
    )
    assert len(table) == 1


def test_malformed_table_raises_config_error() -> None:
    from game_catalog_search.errors import ConfigError
    from game_catalog_search.utils.aliases import parse_platform_aliases

    with pytest.raises(ConfigError):
        parse_platform_aliases(["ps5"])
    with pytest.raises(ConfigError):
        parse_platform_aliases({"aliases": {"ps5": 167}})


def test_load_platform_aliases_from_custom_file(tmp_path) -> None:
    from game_catalog_search.utils.aliases import load_platform_aliases, resolve_query

    p = tmp_path / "aliases.yaml"
    p.write_text(
        "aliases:\n  - alias: deck\n    igdb_ids: [6]\n    names: ['PC (Microsoft Windows)']\n",
        encoding="utf-8",
    )
    table = load_platform_aliases(p)
    q = resolve_query("hades deck", table)
    assert q is not None
    assert q.free_text == "hades"
    assert q.platform_ids == frozenset({6})
