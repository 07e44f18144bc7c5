from datetime import UTC, datetime
from unittest.mock import MagicMock

import psycopg2
import pytest

from chesstrack.db.postgres_stats_repository import PostgresStatsRepository
from chesstrack.domain.platform import Platform
from chesstrack.domain.stats_models import CurrentStatsUpdate, StatsSnapshot
from chesstrack.errors import PersistenceError

NOW = datetime(2024, 5, 10, 18, 0, tzinfo=UTC)


def _conn_with_cursor(cursor: MagicMock) -> MagicMock:
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn


def test_failed_update_sql_omits_computed_at():
    cursor = MagicMock()
    conn = _conn_with_cursor(cursor)
    repository = PostgresStatsRepository(conn)

    repository.upsert_current_stats(
        "s1",
        Platform.LICHESS,
        CurrentStatsUpdate(attempt_at=NOW, ok=False, error_code="RATE_LIMIT"),
    )

    sql, params = cursor.execute.call_args[0]
    assert "computed_at" not in sql.replace("last_update_attempt_at", "")
    assert "ON CONFLICT (student_id, platform) DO UPDATE" in sql
    assert "%s" in sql and "?" not in sql
    assert params[:2] == ("s1", "lichess")
    assert NOW in params
    conn.commit.assert_called_once()


def test_successful_update_sets_computed_at():
    cursor = MagicMock()
    repository = PostgresStatsRepository(_conn_with_cursor(cursor))

    repository.upsert_current_stats(
        "s1",
        Platform.CHESSCOM,
        CurrentStatsUpdate(attempt_at=NOW, ok=True, values={"blitz_24h": 4}),
    )

    sql, params = cursor.execute.call_args[0]
    assert "computed_at = EXCLUDED.computed_at" in sql
    assert 4 in params


def test_append_snapshot_returns_generated_id():
    cursor = MagicMock()
    cursor.fetchone.return_value = (42,)
    conn = _conn_with_cursor(cursor)
    repository = PostgresStatsRepository(conn)

    snapshot_id = repository.append_snapshot(
        StatsSnapshot(student_id="s1", source=Platform.LICHESS, captured_at=NOW, rapid_total=5)
    )

    sql, params = cursor.execute.call_args[0]
    assert snapshot_id == 42
    assert sql.startswith("INSERT INTO stats_snapshots")
    assert "RETURNING snapshot_id" in sql
    assert params[0] == "s1"
    assert params[1] == "lichess"
    conn.commit.assert_called_once()


def test_baseline_lookup_maps_rows():
    cursor = MagicMock()
    cursor.fetchall.return_value = [
        {
            "snapshot_id": 7,
            "student_id": "s1",
            "source": "lichess",
            "captured_at": NOW,
            "rapid_total": 50,
            "rapid_rating": 1500,
        }
    ]
    repository = PostgresStatsRepository(_conn_with_cursor(cursor))

    snapshot = repository.find_baseline_snapshot("s1", NOW, Platform.LICHESS)

    sql, params = cursor.execute.call_args[0]
    assert "captured_at <= %s" in sql
    assert "source = %s" in sql
    assert params == ("s1", NOW, "lichess")
    assert snapshot.snapshot_id == 7
    assert snapshot.rapid_total == 50
    assert snapshot.blitz_total is None


def test_driver_error_rolls_back_and_wraps():
    cursor = MagicMock()
    cursor.execute.side_effect = psycopg2.OperationalError("server closed the connection")
    conn = _conn_with_cursor(cursor)
    repository = PostgresStatsRepository(conn)

    with pytest.raises(PersistenceError):
        repository.mark_connection_synced("s1", Platform.LICHESS, NOW)

    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()


def test_init_schema_uses_postgres_types():
    cursor = MagicMock()
    repository = PostgresStatsRepository(_conn_with_cursor(cursor))

    repository.init_schema()

    statements = [call.args[0] for call in cursor.execute.call_args_list]
    assert any("BIGSERIAL" in sql for sql in statements)
    assert all("TIMESTAMP " not in sql.replace("TIMESTAMPTZ", "") for sql in statements)
