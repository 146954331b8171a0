"""Command-line interface for game catalog search."""

from __future__ import annotations

import argparse
import json
import logging
import os
import shlex
import sys
from datetime import datetime
from pathlib import Path

from .config import IGDB
from .errors import CatalogSearchError
from .pipelines.context import PipelineContext
from .pipelines.export_pipeline import export_catalog
from .pipelines.resolve_pipeline import resolve_game
from .pipelines.search_pipeline import CatalogSearch
from .pipelines.seed_pipeline import run_seed


def setup_logging(log_file: Path) -> None:
    """Configure logging to both console and file."""
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)

    # Console output goes to stderr so stdout stays clean for results.
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Silence verbose HTTP and SQL debug logs by default
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)

    logging.info(f"Logging to file: {log_file}")


def _default_log_file(*, command_name: str, logs_dir: Path) -> Path:
    logs_dir.mkdir(parents=True, exist_ok=True)

    now = datetime.now()
    stamp = now.strftime("%Y%m%d-%H%M%S") + f".{now.microsecond // 1000:03d}"
    candidate = logs_dir / f"log-{stamp}-{command_name}.log"
    if not candidate.exists():
        return candidate
    return logs_dir / f"log-{stamp}-{command_name}-{os.getpid()}.log"


def _setup_logging_from_args(args: argparse.Namespace) -> None:
    setup_logging(
        args.log_file or _default_log_file(command_name=args.command, logs_dir=args.logs_dir)
    )
    if args.debug:
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        for handler in root_logger.handlers:
            handler.setLevel(logging.DEBUG)
        logging.getLogger("urllib3").setLevel(logging.DEBUG)

    argv = " ".join(shlex.quote(a) for a in sys.argv)
    logging.info(f"Invocation: {argv}")


def _context(args: argparse.Namespace) -> PipelineContext:
    return PipelineContext(
        database_url=args.database_url,
        credentials_path=args.credentials,
        aliases_path=args.aliases,
    )


def _print_json(payload: object) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _command_init_db(args: argparse.Namespace) -> None:
    _setup_logging_from_args(args)
    store = _context(args).build_store()
    store.create_all()


def _command_search(args: argparse.Namespace) -> None:
    _setup_logging_from_args(args)
    ctx = _context(args)
    store = ctx.build_store()
    client = ctx.build_client()
    with CatalogSearch(store, client, ctx.build_aliases()) as search:
        results = search.search(args.query)

    if args.json:
        _print_json([r.to_dict() for r in results])
    else:
        for r in results:
            year = r.release_year if r.release_year is not None else "----"
            print(f"{r.igdb_id}\t{year}\t{r.category.value}\t{r.title}")
    if client is not None:
        logging.info(f"[IGDB] {client.format_stats()}")


def _command_resolve(args: argparse.Namespace) -> None:
    _setup_logging_from_args(args)
    ctx = _context(args)
    store = ctx.build_store()
    game = resolve_game(args.igdb_id, store=store, client=ctx.build_client(), refresh=args.refresh)
    if game is None:
        raise SystemExit(f"Game not found: igdb_id={args.igdb_id}")
    _print_json({"id": game.id, "igdb_id": game.igdb_id, "title": game.title})


def _command_show(args: argparse.Namespace) -> None:
    _setup_logging_from_args(args)
    details = _context(args).build_store().get_game_details(args.igdb_id)
    if details is None:
        raise SystemExit(f"Game not in local catalog: igdb_id={args.igdb_id}")
    _print_json(details.to_dict())


def _command_seed(args: argparse.Namespace) -> None:
    _setup_logging_from_args(args)
    ctx = _context(args)
    client = ctx.build_client()
    if client is None:
        raise SystemExit("Missing IGDB credentials. Set IGDB_CLIENT_ID and IGDB_ACCESS_TOKEN.")
    store = ctx.build_store()
    store.create_all()
    run_seed(
        store=store,
        client=client,
        limit=args.limit,
        max_batches=args.max_batches,
        offset=args.offset,
        max_games=args.max_games,
        delay_ms=args.delay_ms,
        where=args.where,
        sort=args.sort,
    )
    logging.info(f"[IGDB] {client.format_stats()}")


def _command_export(args: argparse.Namespace) -> None:
    _setup_logging_from_args(args)
    export_catalog(_context(args).build_store(), args.output)


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        raise SystemExit(
            "Missing command. Use one of: init-db, search, resolve, show, seed, export. "
            "Run `game-catalog-search --help` for usage."
        )

    parser = argparse.ArgumentParser(description="Search a local game catalog backed by IGDB")
    sub = parser.add_subparsers(dest="command", required=True)

    p_common = argparse.ArgumentParser(add_help=False)
    p_common.add_argument(
        "--database-url",
        type=str,
        help="SQLAlchemy database URL (default: $DATABASE_URL, else sqlite:///data/catalog.db)",
    )
    p_common.add_argument(
        "--credentials", type=Path, help="Credentials YAML (default: data/credentials.yaml)"
    )
    p_common.add_argument(
        "--aliases", type=Path, help="Platform aliases YAML (default: bundled table)"
    )
    p_common.add_argument(
        "--logs-dir",
        type=Path,
        default=Path("data") / "logs",
        help="Directory for default log files (default: data/logs)",
    )
    p_common.add_argument(
        "--log-file",
        type=Path,
        help="Log file path (default: <logs-dir>/log-<timestamp>-<command>.log)",
    )
    p_common.add_argument(
        "--debug", action="store_true", help="Enable DEBUG logging (default: INFO)"
    )

    p_init = sub.add_parser("init-db", help="Create the catalog tables", parents=[p_common])
    p_init.set_defaults(_fn=_command_init_db)

    p_search = sub.add_parser(
        "search",
        help="Search the local catalog and IGDB, local results first",
        parents=[p_common],
    )
    p_search.add_argument("query", type=str, help="Free text, optionally with platform names")
    p_search.add_argument("--json", action="store_true", help="Print results as JSON")
    p_search.set_defaults(_fn=_command_search)

    p_resolve = sub.add_parser(
        "resolve",
        help="Make sure an IGDB game exists in the local catalog",
        parents=[p_common],
    )
    p_resolve.add_argument("igdb_id", type=int, help="IGDB game id")
    p_resolve.add_argument(
        "--refresh",
        action="store_true",
        help="Re-fetch from IGDB even when the game is already stored",
    )
    p_resolve.set_defaults(_fn=_command_resolve)

    p_show = sub.add_parser("show", help="Print a stored game as JSON", parents=[p_common])
    p_show.add_argument("igdb_id", type=int, help="IGDB game id")
    p_show.set_defaults(_fn=_command_show)

    p_seed = sub.add_parser(
        "seed", help="Bulk-load games from IGDB into the local catalog", parents=[p_common]
    )
    p_seed.add_argument(
        "--limit", type=int, default=IGDB.seed_batch_size, help="Games per IGDB page (default: 100)"
    )
    p_seed.add_argument("--max-batches", type=int, default=5, help="Pages to fetch (default: 5)")
    p_seed.add_argument("--offset", type=int, default=0, help="Starting offset (default: 0)")
    p_seed.add_argument(
        "--max-games",
        type=int,
        default=20,
        help="Stop after storing this many games; 0 for no cap (default: 20)",
    )
    p_seed.add_argument(
        "--delay-ms",
        type=int,
        default=IGDB.seed_delay_ms,
        help="Pause between pages in milliseconds (default: 350)",
    )
    p_seed.add_argument(
        "--where", type=str, default="name != null", help="IGDB where clause (default: name != null)"
    )
    p_seed.add_argument("--sort", type=str, default="id asc", help="IGDB sort clause (default: id asc)")
    p_seed.set_defaults(_fn=_command_seed)

    p_export = sub.add_parser(
        "export", help="Write the local catalog to a CSV file", parents=[p_common]
    )
    p_export.add_argument("output", type=Path, help="Output CSV path")
    p_export.set_defaults(_fn=_command_export)

    ns = parser.parse_args(argv)
    try:
        ns._fn(ns)
    except CatalogSearchError as e:
        logging.error(f"{type(e).__name__}: {e}")
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
