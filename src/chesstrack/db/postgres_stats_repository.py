"""Stats repository for Postgres-backed storage."""

from __future__ import annotations

from collections.abc import Sequence

import psycopg2
from psycopg2.extensions import connection as PgConnection  # noqa: N812
from psycopg2.extras import RealDictCursor

from chesstrack.db import stats_queries as queries
from chesstrack.db.base_stats_repository import BaseStatsRepository

POSTGRES_TIMESTAMP_TYPE = "TIMESTAMPTZ"
POSTGRES_SNAPSHOT_ID_TYPE = "BIGSERIAL"


class PostgresStatsRepository(BaseStatsRepository):
    """Encapsulates stats persistence for Postgres.

    Every write commits on success and rolls back on a driver error.
    """

    placeholder = "%s"
    driver_errors = (psycopg2.Error,)

    def __init__(self, conn: PgConnection) -> None:
        self._conn = conn

    def _schema_statements(self) -> list[str]:
        return queries.schema_statements(POSTGRES_TIMESTAMP_TYPE, POSTGRES_SNAPSHOT_ID_TYPE)

    def _fetch_all(self, sql: str, params: Sequence[object]) -> list[dict[str, object]]:
        try:
            with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, tuple(params))
                rows = cur.fetchall()
        except psycopg2.Error:
            self._conn.rollback()
            raise
        self._conn.commit()
        return [dict(row) for row in rows]

    def _execute(self, sql: str, params: Sequence[object]) -> None:
        try:
            with self._conn.cursor() as cur:
                cur.execute(sql, tuple(params))
        except psycopg2.Error:
            self._conn.rollback()
            raise
        else:
            self._conn.commit()

    def _insert_snapshot_row(self, row: dict[str, object]) -> int:
        sql = queries.insert_snapshot_sql(self.placeholder, with_id=False) + " RETURNING snapshot_id"
        try:
            with self._conn.cursor() as cur:
                cur.execute(sql, tuple(row[name] for name in queries.SNAPSHOT_COLUMNS))
                snapshot_id = cur.fetchone()[0]
        except psycopg2.Error:
            self._conn.rollback()
            raise
        else:
            self._conn.commit()
        return int(snapshot_id)
