"""Stats repository for DuckDB-backed storage."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

import duckdb

from chesstrack.db import stats_queries as queries
from chesstrack.db.base_stats_repository import BaseStatsRepository
from chesstrack.db.duckdb_store import init_schema
from chesstrack.utils.now import Now


@dataclass(frozen=True)
class DuckDbStatsDependencies:
    """Dependencies used by the DuckDB stats repository."""

    init_schema: Callable[[duckdb.DuckDBPyConnection], None]


def default_stats_dependencies() -> DuckDbStatsDependencies:
    return DuckDbStatsDependencies(init_schema=init_schema)


def _rows_to_dicts(result: duckdb.DuckDBPyConnection) -> list[dict[str, object]]:
    columns = [desc[0] for desc in result.description]
    return [dict(zip(columns, row, strict=True)) for row in result.fetchall()]


class DuckDbStatsRepository(BaseStatsRepository):
    """Encapsulates stats persistence for DuckDB.

    DuckDB runs in autocommit mode here, so each write is its own transaction
    and the ``ON CONFLICT`` upsert is atomic per row.
    """

    placeholder = "?"
    driver_errors = (duckdb.Error,)

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        *,
        dependencies: DuckDbStatsDependencies | None = None,
    ) -> None:
        self._conn = conn
        self._dependencies = dependencies or default_stats_dependencies()

    def init_schema(self) -> None:
        with self._guard("init_schema"):
            self._dependencies.init_schema(self._conn)

    def _timestamp(self, value: datetime | None) -> object:
        return Now.to_naive_utc(value)

    def _fetch_all(self, sql: str, params: Sequence[object]) -> list[dict[str, object]]:
        return _rows_to_dicts(self._conn.execute(sql, list(params)))

    def _execute(self, sql: str, params: Sequence[object]) -> None:
        self._conn.execute(sql, list(params))

    def _insert_snapshot_row(self, row: dict[str, object]) -> int:
        next_id = self._conn.execute(
            "SELECT COALESCE(MAX(snapshot_id), 0) + 1 FROM stats_snapshots"
        ).fetchone()[0]
        sql = queries.insert_snapshot_sql(self.placeholder, with_id=True)
        self._conn.execute(sql, [next_id, *(row[name] for name in queries.SNAPSHOT_COLUMNS)])
        return int(next_id)
