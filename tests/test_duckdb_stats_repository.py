from datetime import UTC, datetime, timedelta

import duckdb
import pytest

from chesstrack.db.duckdb_stats_repository import DuckDbStatsRepository
from chesstrack.db.duckdb_store import get_connection
from chesstrack.domain.platform import Platform
from chesstrack.domain.stats_models import CurrentStatsUpdate, PlatformConnection, StatsSnapshot
from chesstrack.errors import PersistenceError

NOW = datetime(2024, 5, 10, 18, 0, tzinfo=UTC)


@pytest.fixture
def store(tmp_path):
    conn = get_connection(tmp_path / "nested" / "stats.duckdb")
    repository = DuckDbStatsRepository(conn)
    repository.init_schema()
    yield repository
    conn.close()


def _snapshot(hours_ago: float, rapid_total: int, source: Platform = Platform.LICHESS) -> StatsSnapshot:
    return StatsSnapshot(
        student_id="s1",
        source=source,
        captured_at=NOW - timedelta(hours=hours_ago),
        rapid_total=rapid_total,
        rapid_rating=1500 + rapid_total,
    )


def test_init_schema_is_idempotent(store):
    store.init_schema()

    assert store.list_connections(10, 0) == []


def test_connections_ordered_least_recently_synced_first(store):
    store.upsert_connection(PlatformConnection("a", Platform.LICHESS, "alice", NOW))
    store.upsert_connection(PlatformConnection("b", Platform.CHESSCOM, "bob", None))
    store.upsert_connection(
        PlatformConnection("c", Platform.LICHESS, "carol", NOW - timedelta(days=1))
    )
    store.upsert_connection(PlatformConnection("d", Platform.LICHESS, "  ", None))

    ordered = store.list_connections(10, 0)

    assert [c.student_id for c in ordered] == ["b", "c", "a"]
    assert ordered[0].last_synced_at is None
    assert ordered[2].last_synced_at == NOW
    assert [c.student_id for c in store.list_connections(1, 1)] == ["c"]


def test_mark_synced_and_token(store):
    store.upsert_connection(PlatformConnection("a", Platform.LICHESS, "alice"))

    store.mark_connection_synced("a", Platform.LICHESS, NOW)
    assert store.store_lichess_token("a", "sealed") is True
    assert store.store_lichess_token("nobody", "sealed") is False

    connection = store.get_connection("a", Platform.LICHESS)
    assert connection.last_synced_at == NOW
    assert connection.lichess_token_encrypted == "sealed"
    assert store.get_connection("a", Platform.CHESSCOM) is None


def test_append_only_snapshots_and_baseline_lookup(store):
    first = store.append_snapshot(_snapshot(40, 50))
    second = store.append_snapshot(_snapshot(25, 55))
    store.append_snapshot(_snapshot(1, 60))
    store.append_snapshot(_snapshot(26, 999, source=Platform.CHESSCOM))

    assert second == first + 1
    baseline = store.find_baseline_snapshot("s1", NOW - timedelta(hours=24), Platform.LICHESS)
    assert baseline.rapid_total == 55
    assert baseline.captured_at == NOW - timedelta(hours=25)
    assert baseline.source is Platform.LICHESS

    any_source = store.find_baseline_snapshot("s1", NOW - timedelta(hours=24))
    assert any_source.rapid_total == 55

    assert store.find_baseline_snapshot("s1", NOW - timedelta(days=3)) is None
    assert store.latest_snapshot("s1", Platform.LICHESS).rapid_total == 60
    assert store.latest_snapshot("s1", Platform.CHESSCOM).rapid_total == 999


def test_duplicate_snapshots_are_kept(store):
    store.append_snapshot(_snapshot(2, 10))
    store.append_snapshot(_snapshot(2, 10))

    count = store._conn.execute("SELECT COUNT(*) FROM stats_snapshots").fetchone()[0]
    assert count == 2


def test_failed_update_leaves_computed_at(store):
    success = CurrentStatsUpdate(
        attempt_at=NOW - timedelta(hours=6),
        ok=True,
        values={"rapid_24h": 3, "rapid_7d": 9},
    )
    store.upsert_current_stats("s1", Platform.LICHESS, success)

    failure = CurrentStatsUpdate(
        attempt_at=NOW,
        ok=False,
        error_code="TRANSPORT_ERROR",
        error_message="timed out",
    )
    store.upsert_current_stats("s1", Platform.LICHESS, failure)

    stats = store.fetch_current_stats("s1", Platform.LICHESS)
    assert stats.rapid_24h == 3
    assert stats.rapid_7d == 9
    assert stats.computed_at == NOW - timedelta(hours=6)
    assert stats.last_update_ok is False
    assert stats.last_update_error_code == "TRANSPORT_ERROR"
    assert stats.last_update_attempt_at == NOW


def test_failure_on_new_row_keeps_computed_at_null(store):
    store.upsert_current_stats(
        "s2",
        Platform.CHESSCOM,
        CurrentStatsUpdate(attempt_at=NOW, ok=False, error_code="RATE_LIMIT"),
    )

    stats = store.fetch_current_stats("s2", Platform.CHESSCOM)
    assert stats.computed_at is None
    assert stats.rapid_24h is None
    assert [row.platform for row in store.list_current_stats("s2")] == [Platform.CHESSCOM]


def test_unknown_update_field_is_rejected():
    with pytest.raises(ValueError):
        CurrentStatsUpdate(attempt_at=NOW, ok=True, values={"bullet_24h": 1})


def test_driver_errors_become_persistence_errors():
    conn = duckdb.connect(":memory:")
    repository = DuckDbStatsRepository(conn)

    with pytest.raises(PersistenceError):
        repository.fetch_current_stats("s1", Platform.LICHESS)
    conn.close()
