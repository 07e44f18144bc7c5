from datetime import UTC, datetime, timedelta, timezone

import pytest

from chesstrack.domain.baseline_delta import (
    GRACE_7D,
    GRACE_24H,
    is_baseline_fresh,
    resolve_baseline_delta,
    resolve_rating_delta,
)

NOW = datetime(2024, 5, 10, 18, 0, tzinfo=UTC)
DAY_START = NOW - timedelta(hours=24)
WEEK_START = NOW - timedelta(days=7)


def test_delta_from_baseline_inside_grace():
    captured = NOW - timedelta(hours=25)

    assert resolve_baseline_delta(57, 50, captured, DAY_START, GRACE_24H) == 7


def test_delta_undefined_when_baseline_too_old():
    captured = NOW - timedelta(hours=40)

    assert resolve_baseline_delta(57, 50, captured, DAY_START, GRACE_24H) is None


def test_grace_edge_is_inclusive():
    captured = DAY_START - GRACE_24H

    assert is_baseline_fresh(captured, DAY_START, GRACE_24H)
    assert not is_baseline_fresh(captured - timedelta(seconds=1), DAY_START, GRACE_24H)


def test_delta_undefined_without_baseline_total():
    assert resolve_baseline_delta(10, None, NOW - timedelta(hours=26), DAY_START, GRACE_24H) is None


def test_delta_undefined_without_capture_time():
    assert resolve_baseline_delta(10, 5, None, DAY_START, GRACE_24H) is None


def test_delta_undefined_without_current_total():
    assert resolve_baseline_delta(None, 5, NOW - timedelta(hours=26), DAY_START, GRACE_24H) is None


def test_counter_reset_clamps_to_zero():
    captured = NOW - timedelta(days=7, hours=3)

    assert resolve_baseline_delta(12, 40, captured, WEEK_START, GRACE_7D) == 0


@pytest.mark.parametrize(
    ("current", "baseline"),
    [(0, 0), (5, 0), (0, 5), (120, 119), (3, 300)],
)
def test_delta_is_clamped_difference(current, baseline):
    captured = NOW - timedelta(hours=30)

    assert resolve_baseline_delta(current, baseline, captured, DAY_START, GRACE_24H) == max(
        0, current - baseline
    )


def test_week_window_uses_day_grace():
    fresh = WEEK_START - timedelta(hours=23)
    stale = WEEK_START - timedelta(hours=25)

    assert resolve_baseline_delta(30, 10, fresh, WEEK_START, GRACE_7D) == 20
    assert resolve_baseline_delta(30, 10, stale, WEEK_START, GRACE_7D) is None


def test_rating_delta_keeps_sign():
    captured = NOW - timedelta(hours=26)

    assert resolve_rating_delta(1480, 1500, captured, DAY_START, GRACE_24H) == -20
    assert resolve_rating_delta(1520, 1500, captured, DAY_START, GRACE_24H) == 20
    assert resolve_rating_delta(1520, 1500, NOW - timedelta(hours=48), DAY_START, GRACE_24H) is None


def test_naive_timestamps_are_treated_as_utc():
    captured = (DAY_START - GRACE_24H).replace(tzinfo=None)
    offset_start = DAY_START.astimezone(timezone(timedelta(hours=-5)))

    assert is_baseline_fresh(captured, DAY_START.replace(tzinfo=None), GRACE_24H)
    assert is_baseline_fresh(captured, offset_start, GRACE_24H)
    assert not is_baseline_fresh(captured - timedelta(seconds=1), offset_start, GRACE_24H)
