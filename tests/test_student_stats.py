from datetime import UTC, datetime, timedelta

import pytest

from chesstrack.app.use_cases.lichess_token import has_lichess_token, store_lichess_token
from chesstrack.app.use_cases.student_stats import get_student_stats
from chesstrack.config import LichessSettings, Settings
from chesstrack.domain.freshness import Freshness, classify_freshness
from chesstrack.domain.platform import Platform
from chesstrack.domain.stats_models import CurrentStats, CurrentStatsUpdate, PlatformConnection
from chesstrack.errors import ConfigurationError, NotFoundError
from chesstrack.security.token_encryption import decrypt_token

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=UTC)
KEY = "0f" * 32
STALE_AFTER = timedelta(hours=2)


@pytest.mark.parametrize(
    ("computed_at", "last_ok", "expected"),
    [
        (None, None, Freshness.NEVER_COMPUTED),
        (NOW - timedelta(minutes=30), True, Freshness.FRESH),
        (NOW - timedelta(hours=3), True, Freshness.STALE),
        (NOW - timedelta(minutes=30), False, Freshness.STALE),
    ],
)
def test_classify_freshness(computed_at, last_ok, expected):
    stats = CurrentStats("s1", Platform.LICHESS, computed_at=computed_at, last_update_ok=last_ok)

    assert classify_freshness(stats, NOW, STALE_AFTER) is expected


def test_classify_freshness_accepts_naive_now():
    stats = CurrentStats(
        "s1", Platform.LICHESS, computed_at=NOW - timedelta(hours=1), last_update_ok=True
    )

    assert classify_freshness(stats, NOW.replace(tzinfo=None), STALE_AFTER) is Freshness.FRESH
    later = (NOW + timedelta(hours=2)).replace(tzinfo=None)
    assert classify_freshness(stats, later, STALE_AFTER) is Freshness.STALE


def test_student_stats_keep_last_good_values_after_failure(store):
    store.upsert_current_stats(
        "s1",
        Platform.LICHESS,
        CurrentStatsUpdate(NOW - timedelta(hours=1), ok=True, values={"rapid_7d": 6}),
    )
    store.upsert_current_stats(
        "s1",
        Platform.LICHESS,
        CurrentStatsUpdate(NOW, ok=False, error_code="RATE_LIMIT", error_message="slow down"),
    )
    store.upsert_current_stats(
        "s1",
        Platform.CHESSCOM,
        CurrentStatsUpdate(NOW - timedelta(minutes=5), ok=True, values={"blitz_24h": 2}),
    )

    rows = get_student_stats(store, "s1", Settings(), now=NOW)

    by_platform = {row["platform"]: row for row in rows}
    assert by_platform["lichess"]["rapid_7d"] == 6
    assert by_platform["lichess"]["freshness"] == "stale"
    assert by_platform["lichess"]["last_update_error_code"] == "RATE_LIMIT"
    assert by_platform["chesscom"]["freshness"] == "fresh"


def test_unknown_student_has_no_stats(store):
    assert get_student_stats(store, "nobody", Settings(), now=NOW) == []


def _token_settings() -> Settings:
    return Settings(lichess=LichessSettings(encryption_key=KEY))


def test_store_lichess_token_encrypts_at_rest(store):
    store.upsert_connection(PlatformConnection("s1", Platform.LICHESS, "student"))

    store_lichess_token(store, "s1", " lip_abc ", _token_settings())

    stored = store.get_connection("s1", Platform.LICHESS).lichess_token_encrypted
    assert stored != "lip_abc"
    assert decrypt_token(stored, KEY) == "lip_abc"
    assert has_lichess_token(store, "s1") is True


def test_store_lichess_token_requires_connection(store):
    with pytest.raises(NotFoundError):
        store_lichess_token(store, "s1", "lip_abc", _token_settings())
    assert has_lichess_token(store, "s1") is False


def test_store_lichess_token_rejects_blank_token(store):
    with pytest.raises(ConfigurationError):
        store_lichess_token(store, "s1", "  ", _token_settings())
