from datetime import UTC, datetime, timedelta

import pytest

from chesstrack.app.use_cases.batch_sync import (
    BatchSyncRequest,
    clamp_limit,
    run_batch_sync,
    run_configured_batch_sync,
)
from chesstrack.config import Settings, SyncSettings
from chesstrack.domain.platform import EventKind, Platform
from chesstrack.domain.stats_models import PlatformConnection, ProfileSnapshot
from chesstrack.domain.window_counter import WindowCounts
from chesstrack.errors import InvalidRequestError, NotFoundError, RateLimitError
from http_fakes import SteppingClock, fixed_clock
from sync_fakes import FakePlatformClient, client_provider

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=UTC)


def _settings(**sync) -> Settings:
    return Settings(store="duckdb", sync=SyncSettings(**sync))


def _clients(**lichess_overrides):
    lichess_options = {
        "counts": {EventKind.RAPID: WindowCounts(1, 2), EventKind.BLITZ: WindowCounts(0, 1)},
        "profile": ProfileSnapshot(rapid_total=20),
        **lichess_overrides,
    }
    lichess = FakePlatformClient(Platform.LICHESS, **lichess_options)
    chesscom = FakePlatformClient(
        Platform.CHESSCOM,
        counts={EventKind.RAPID: WindowCounts(2, 4), EventKind.BLITZ: WindowCounts(1, 1)},
        profile=ProfileSnapshot(blitz_total=11),
    )
    return lichess, chesscom


def _seed(store):
    store.upsert_connection(PlatformConnection("a", Platform.LICHESS, "alice", NOW - timedelta(hours=1)))
    store.upsert_connection(PlatformConnection("b", Platform.CHESSCOM, "bob"))
    store.upsert_connection(PlatformConnection("c", Platform.LICHESS, "carol", NOW - timedelta(days=2)))


def test_batch_processes_least_recently_synced_first(store):
    _seed(store)
    lichess, chesscom = _clients()

    summary = run_batch_sync(
        store, client_provider(lichess, chesscom), _settings(), clock=fixed_clock(NOW)
    )

    assert [outcome.student_id for outcome in summary.outcomes] == ["b", "c", "a"]
    assert summary.ok is True
    assert summary.to_dict()["processed"] == 3
    assert store.fetch_current_stats("b", Platform.CHESSCOM).rapid_7d == 4


def test_one_failure_does_not_stop_the_batch(store):
    _seed(store)
    lichess, chesscom = _clients(
        counts={
            EventKind.RAPID: RateLimitError("429 Too Many Requests"),
            EventKind.BLITZ: WindowCounts(0, 0),
        }
    )

    summary = run_batch_sync(
        store, client_provider(lichess, chesscom), _settings(), clock=fixed_clock(NOW)
    )

    assert summary.processed == 3
    assert summary.failed == 2
    assert {o.error_code for o in summary.outcomes if not o.ok} == {"RATE_LIMIT"}
    assert summary.ok is False
    assert store.fetch_current_stats("b", Platform.CHESSCOM).last_update_ok is True


def test_limit_and_offset_page_the_roster(store):
    _seed(store)
    lichess, chesscom = _clients()

    summary = run_batch_sync(
        store,
        client_provider(lichess, chesscom),
        _settings(),
        BatchSyncRequest(limit=1, offset=1),
        clock=fixed_clock(NOW),
    )

    assert [outcome.student_id for outcome in summary.outcomes] == ["c"]


@pytest.mark.parametrize(("limit", "expected"), [(None, 50), (0, 1), (-5, 1), (30, 30), (500, 100)])
def test_clamp_limit(limit, expected):
    assert clamp_limit(limit, _settings()) == expected


def test_targeted_request_syncs_one_connection(store):
    _seed(store)
    lichess, chesscom = _clients()

    summary = run_batch_sync(
        store,
        client_provider(lichess, chesscom),
        _settings(),
        BatchSyncRequest(student_id="a", platform="Lichess"),
        clock=fixed_clock(NOW),
    )

    assert [outcome.student_id for outcome in summary.outcomes] == ["a"]
    assert chesscom.calls == []


@pytest.mark.parametrize(
    "request_",
    [
        BatchSyncRequest(student_id="a"),
        BatchSyncRequest(platform="lichess"),
        BatchSyncRequest(student_id="a", platform="fide"),
    ],
)
def test_incomplete_or_unknown_target_is_rejected(store, request_):
    with pytest.raises(InvalidRequestError):
        run_batch_sync(store, client_provider(*_clients()), _settings(), request_)


def test_missing_target_connection_is_not_found(store):
    _seed(store)

    with pytest.raises(NotFoundError):
        run_batch_sync(
            store,
            client_provider(*_clients()),
            _settings(),
            BatchSyncRequest(student_id="a", platform="chess.com"),
        )


def test_deadline_abandons_remaining_connections(store):
    _seed(store)
    lichess, chesscom = _clients()

    summary = run_batch_sync(
        store,
        client_provider(lichess, chesscom),
        _settings(),
        clock=fixed_clock(NOW),
        monotonic=SteppingClock(step=4.0),
        deadline_s=10.0,
    )

    # Reads: 0 (start), 4, 8 -> two syncs, then 12 crosses the deadline.
    assert summary.processed == 2
    assert summary.timed_out is True
    assert summary.remaining == 1
    assert summary.ok is False


def test_empty_roster_is_ok(store):
    summary = run_batch_sync(store, client_provider(*_clients()), _settings())

    assert summary.processed == 0
    assert summary.ok is True
    assert set(summary.to_dict()) == {
        "ok",
        "processed",
        "succeeded",
        "failed",
        "timed_out",
        "remaining",
        "outcomes",
    }


def test_configured_batch_opens_duckdb_store(tmp_path):
    settings = Settings(store="duckdb", duckdb_path=tmp_path / "data" / "stats.duckdb")

    summary = run_configured_batch_sync(settings=settings)

    assert summary.to_dict()["processed"] == 0
    assert (tmp_path / "data" / "stats.duckdb").exists()
