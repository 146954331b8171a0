from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from ..config import STORE

Base = declarative_base()


def make_engine(database_url: str = STORE.database_url) -> Engine:
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}

    if is_sqlite and ":memory:" not in database_url:
        # sqlite:///relative/path.db -> make sure the parent directory exists.
        db_path = database_url.split(":///", 1)[-1]
        if db_path:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine_kwargs = {
        "connect_args": connect_args,
        "pool_pre_ping": True,
        "pool_recycle": STORE.pool_recycle_s,
    }
    if not is_sqlite:
        engine_kwargs.update(
            {
                "pool_size": STORE.pool_size,
                "max_overflow": STORE.max_overflow,
            }
        )
    return create_engine(database_url, **engine_kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit=False: snapshots are read from rows right after commit.
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
