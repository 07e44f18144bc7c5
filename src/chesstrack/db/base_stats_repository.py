"""Backend-neutral stats repository logic."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime

from chesstrack.db import stats_queries as queries
from chesstrack.domain.platform import Platform
from chesstrack.domain.stats_models import (
    CurrentStats,
    CurrentStatsUpdate,
    PlatformConnection,
    StatsSnapshot,
)
from chesstrack.errors import PersistenceError


class BaseStatsRepository:
    """Implements the stats store on top of a DB-API style connection.

    Subclasses supply the placeholder style, the driver error types and the
    three primitives ``_fetch_all``, ``_execute`` and ``_insert_snapshot_row``.
    """

    placeholder = "?"
    driver_errors: tuple[type[Exception], ...] = ()

    def _fetch_all(self, sql: str, params: Sequence[object]) -> list[dict[str, object]]:
        raise NotImplementedError

    def _execute(self, sql: str, params: Sequence[object]) -> None:
        raise NotImplementedError

    def _insert_snapshot_row(self, row: dict[str, object]) -> int:
        raise NotImplementedError

    def _schema_statements(self) -> list[str]:
        raise NotImplementedError

    def _timestamp(self, value: datetime | None) -> object:
        return value

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except self.driver_errors as exc:
            raise PersistenceError(f"{operation} failed: {exc}") from exc

    def init_schema(self) -> None:
        with self._guard("init_schema"):
            for statement in self._schema_statements():
                self._execute(statement, ())

    def list_connections(self, limit: int, offset: int) -> list[PlatformConnection]:
        with self._guard("list_connections"):
            rows = self._fetch_all(queries.list_connections_sql(self.placeholder), (limit, offset))
        return [queries.row_to_connection(row) for row in rows]

    def get_connection(self, student_id: str, platform: Platform) -> PlatformConnection | None:
        with self._guard("get_connection"):
            rows = self._fetch_all(
                queries.get_connection_sql(self.placeholder),
                (student_id, platform.value),
            )
        return queries.row_to_connection(rows[0]) if rows else None

    def upsert_connection(self, connection: PlatformConnection) -> None:
        with self._guard("upsert_connection"):
            self._execute(
                queries.upsert_connection_sql(self.placeholder),
                (
                    connection.student_id,
                    connection.platform.value,
                    connection.username,
                    self._timestamp(connection.last_synced_at),
                    connection.lichess_token_encrypted,
                ),
            )

    def mark_connection_synced(
        self,
        student_id: str,
        platform: Platform,
        synced_at: datetime,
    ) -> None:
        with self._guard("mark_connection_synced"):
            self._execute(
                queries.mark_synced_sql(self.placeholder),
                (self._timestamp(synced_at), student_id, platform.value),
            )

    def store_lichess_token(self, student_id: str, encrypted_token: str) -> bool:
        if self.get_connection(student_id, Platform.LICHESS) is None:
            return False
        with self._guard("store_lichess_token"):
            self._execute(
                queries.store_token_sql(self.placeholder),
                (encrypted_token, student_id, Platform.LICHESS.value),
            )
        return True

    def append_snapshot(self, snapshot: StatsSnapshot) -> int:
        row = snapshot.to_row()
        row["captured_at"] = self._timestamp(snapshot.captured_at)
        with self._guard("append_snapshot"):
            return self._insert_snapshot_row(row)

    def find_baseline_snapshot(
        self,
        student_id: str,
        at_or_before: datetime,
        source: Platform | None = None,
    ) -> StatsSnapshot | None:
        params: list[object] = [student_id, self._timestamp(at_or_before)]
        if source is not None:
            params.append(source.value)
        sql = queries.snapshot_lookup_sql(
            self.placeholder,
            with_bound=True,
            with_source=source is not None,
        )
        with self._guard("find_baseline_snapshot"):
            rows = self._fetch_all(sql, params)
        return queries.row_to_snapshot(rows[0]) if rows else None

    def latest_snapshot(
        self,
        student_id: str,
        source: Platform | None = None,
    ) -> StatsSnapshot | None:
        params: list[object] = [student_id]
        if source is not None:
            params.append(source.value)
        sql = queries.snapshot_lookup_sql(
            self.placeholder,
            with_bound=False,
            with_source=source is not None,
        )
        with self._guard("latest_snapshot"):
            rows = self._fetch_all(sql, params)
        return queries.row_to_snapshot(rows[0]) if rows else None

    def fetch_current_stats(
        self,
        student_id: str,
        platform: Platform,
    ) -> CurrentStats | None:
        with self._guard("fetch_current_stats"):
            rows = self._fetch_all(
                queries.current_stats_sql(self.placeholder, with_platform=True),
                (student_id, platform.value),
            )
        return queries.row_to_current_stats(rows[0]) if rows else None

    def list_current_stats(self, student_id: str) -> list[CurrentStats]:
        with self._guard("list_current_stats"):
            rows = self._fetch_all(
                queries.current_stats_sql(self.placeholder, with_platform=False),
                (student_id,),
            )
        return [queries.row_to_current_stats(row) for row in rows]

    def upsert_current_stats(
        self,
        student_id: str,
        platform: Platform,
        update: CurrentStatsUpdate,
    ) -> None:
        columns = update.to_columns()
        for name in ("computed_at", "last_update_attempt_at"):
            if name in columns:
                columns[name] = self._timestamp(columns[name])  # type: ignore[arg-type]
        names = list(columns)
        sql = queries.upsert_current_stats_sql(names, self.placeholder)
        with self._guard("upsert_current_stats"):
            self._execute(sql, (student_id, platform.value, *(columns[name] for name in names)))
