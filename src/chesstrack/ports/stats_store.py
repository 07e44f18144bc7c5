"""Repository port for stats persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from chesstrack.domain.platform import Platform
from chesstrack.domain.stats_models import (
    CurrentStats,
    CurrentStatsUpdate,
    PlatformConnection,
    StatsSnapshot,
)


class StatsStore(Protocol):
    """Persistence boundary for connections, snapshots and current stats."""

    def init_schema(self) -> None:
        """Create the tables if they do not exist."""

    def list_connections(self, limit: int, offset: int) -> list[PlatformConnection]:
        """Return connections with a username, least recently synced first."""

    def get_connection(self, student_id: str, platform: Platform) -> PlatformConnection | None:
        """Return the connection for a student and platform."""

    def upsert_connection(self, connection: PlatformConnection) -> None:
        """Create or replace a student's platform connection."""

    def mark_connection_synced(
        self,
        student_id: str,
        platform: Platform,
        synced_at: datetime,
    ) -> None:
        """Record a successful direct fetch for a connection."""

    def store_lichess_token(self, student_id: str, encrypted_token: str) -> bool:
        """Store an encrypted token on the Lichess connection; False when missing."""

    def append_snapshot(self, snapshot: StatsSnapshot) -> int:
        """Insert a snapshot row and return its id."""

    def find_baseline_snapshot(
        self,
        student_id: str,
        at_or_before: datetime,
        source: Platform | None = None,
    ) -> StatsSnapshot | None:
        """Return the latest snapshot captured at or before a time."""

    def latest_snapshot(
        self,
        student_id: str,
        source: Platform | None = None,
    ) -> StatsSnapshot | None:
        """Return the most recent snapshot for a student."""

    def fetch_current_stats(
        self,
        student_id: str,
        platform: Platform,
    ) -> CurrentStats | None:
        """Return the current stats row for a student and platform."""

    def list_current_stats(self, student_id: str) -> list[CurrentStats]:
        """Return every current stats row for a student."""

    def upsert_current_stats(
        self,
        student_id: str,
        platform: Platform,
        update: CurrentStatsUpdate,
    ) -> None:
        """Write a partial update to the current stats row."""
