"""Factory helpers for stats store access."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import duckdb

from chesstrack.config import Settings
from chesstrack.db.duckdb_stats_repository import DuckDbStatsRepository
from chesstrack.db.duckdb_store import get_connection
from chesstrack.db.postgres_connection import postgres_connection
from chesstrack.db.postgres_stats_repository import PostgresStatsRepository
from chesstrack.errors import PersistenceError
from chesstrack.ports.stats_store import StatsStore


@contextmanager
def open_stats_store(settings: Settings) -> Iterator[StatsStore]:
    """Yield the configured stats store with its schema initialized.

    Raises:
        PersistenceError: When the backing database cannot be opened.
    """
    if settings.store == "postgres":
        with postgres_connection(settings) as pg_conn:
            store = PostgresStatsRepository(pg_conn)
            store.init_schema()
            yield store
        return
    try:
        conn = get_connection(settings.duckdb_path)
    except duckdb.Error as exc:
        raise PersistenceError(f"Could not open DuckDB at {settings.duckdb_path}: {exc}") from exc
    try:
        repository = DuckDbStatsRepository(conn)
        repository.init_schema()
        yield repository
    finally:
        conn.close()
