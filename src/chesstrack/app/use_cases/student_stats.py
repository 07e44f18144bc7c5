"""Dashboard read side for a student's current stats."""

from __future__ import annotations

from datetime import datetime, timedelta

from chesstrack.config import Settings
from chesstrack.domain.freshness import classify_freshness
from chesstrack.ports.stats_store import StatsStore
from chesstrack.utils.now import Now


def get_student_stats(
    store: StatsStore,
    student_id: str,
    settings: Settings,
    *,
    now: datetime | None = None,
) -> list[dict[str, object]]:
    """Return each platform's current stats annotated with a ``freshness`` state.

    Last good values are returned as stored even when the latest attempt
    failed; only the freshness flag changes.
    """
    anchor = now or Now.as_datetime()
    stale_after = timedelta(hours=settings.sync.stale_after_hours)
    rows = []
    for stats in store.list_current_stats(student_id):
        payload = stats.to_dict()
        payload["freshness"] = classify_freshness(stats, anchor, stale_after).value
        rows.append(payload)
    return rows
