"""Freshness classification for the dashboard read side."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum

from chesstrack.domain.stats_models import CurrentStats
from chesstrack.utils.now import Now


class Freshness(StrEnum):
    FRESH = "fresh"
    STALE = "stale"
    NEVER_COMPUTED = "never_computed"


def classify_freshness(
    stats: CurrentStats,
    now: datetime,
    stale_after: timedelta,
) -> Freshness:
    """Classify a CurrentStats row.

    A row whose last attempt failed keeps its last good values but is reported
    stale even when ``computed_at`` is recent.
    """
    computed_at = Now.to_utc(stats.computed_at)
    if computed_at is None:
        return Freshness.NEVER_COMPUTED
    if stats.last_update_ok is False:
        return Freshness.STALE
    if Now.as_utc(now) - computed_at > stale_after:
        return Freshness.STALE
    return Freshness.FRESH
