"""Snapshot-baseline delta computation."""

from __future__ import annotations

from datetime import datetime, timedelta

from chesstrack.utils.now import Now

GRACE_24H = timedelta(hours=12)
GRACE_7D = timedelta(hours=24)


def is_baseline_fresh(
    captured_at: datetime | None,
    window_start: datetime,
    grace: timedelta,
) -> bool:
    """Return True when a baseline captured at ``captured_at`` is usable.

    The baseline must be no older than ``window_start - grace``.
    """
    captured = Now.to_utc(captured_at)
    if captured is None:
        return False
    return captured >= Now.as_utc(window_start) - grace


def resolve_baseline_delta(
    current: int | None,
    baseline: int | None,
    captured_at: datetime | None,
    window_start: datetime,
    grace: timedelta,
) -> int | None:
    """Return the clamped lifetime-total delta, or None when undefined.

    None means the caller must keep whatever value it had before. Negative
    differences clamp to zero.

    Args:
        current: Current lifetime total.
        baseline: Lifetime total recorded on the baseline snapshot.
        captured_at: When the baseline snapshot was captured.
        window_start: Start of the window the delta stands in for.
        grace: How far before ``window_start`` a baseline may be captured.

    Returns:
        ``max(0, current - baseline)`` or None.
    """
    if current is None or baseline is None:
        return None
    if not is_baseline_fresh(captured_at, window_start, grace):
        return None
    return max(0, current - baseline)


def resolve_rating_delta(
    current: int | None,
    baseline: int | None,
    captured_at: datetime | None,
    window_start: datetime,
    grace: timedelta,
) -> int | None:
    """Return the signed rating change against a fresh baseline, or None."""
    if current is None or baseline is None:
        return None
    if not is_baseline_fresh(captured_at, window_start, grace):
        return None
    return current - baseline
