"""Stats records shared by the sync engine and the stores."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime

from chesstrack.domain.platform import EventKind, Platform

WINDOW_COUNT_FIELDS = (
    "rapid_24h",
    "rapid_7d",
    "blitz_24h",
    "blitz_7d",
    "puzzle_24h",
    "puzzle_7d",
)
RATING_DELTA_FIELDS = (
    "rapid_rating_delta_24h",
    "rapid_rating_delta_7d",
    "blitz_rating_delta_24h",
    "blitz_rating_delta_7d",
)
RATING_FIELDS = ("rapid_rating", "blitz_rating", "puzzle_rating")
CURRENT_STATS_VALUE_FIELDS = (
    *WINDOW_COUNT_FIELDS,
    "puzzle_total",
    *RATING_DELTA_FIELDS,
    *RATING_FIELDS,
)
ATTEMPT_FIELDS = (
    "last_update_ok",
    "last_update_error_code",
    "last_update_error_message",
    "last_update_attempt_at",
)


def window_field(kind: EventKind | str, window: str) -> str:
    """Return the column name for a kind/window pair, e.g. ``rapid_24h``."""
    return f"{EventKind(kind).value}_{window}"


@dataclass(slots=True)
class PlatformConnection:
    student_id: str
    platform: Platform
    username: str | None
    last_synced_at: datetime | None = None
    lichess_token_encrypted: str | None = None

    @property
    def normalized_username(self) -> str:
        return (self.username or "").strip()


@dataclass(slots=True)
class ProfileSnapshot:
    """Current ratings and lifetime totals reported by a platform."""

    rapid_rating: int | None = None
    blitz_rating: int | None = None
    puzzle_rating: int | None = None
    rapid_total: int | None = None
    blitz_total: int | None = None
    puzzle_total: int | None = None

    def rating(self, kind: EventKind) -> int | None:
        return getattr(self, f"{kind.value}_rating")

    def total(self, kind: EventKind) -> int | None:
        return getattr(self, f"{kind.value}_total")


@dataclass(frozen=True, slots=True)
class StatsSnapshot:
    """Immutable point-in-time stats row."""

    student_id: str
    source: Platform
    captured_at: datetime
    rapid_rating: int | None = None
    blitz_rating: int | None = None
    puzzle_rating: int | None = None
    rapid_total: int | None = None
    blitz_total: int | None = None
    puzzle_total: int | None = None
    rapid_24h: int | None = None
    rapid_7d: int | None = None
    blitz_24h: int | None = None
    blitz_7d: int | None = None
    puzzle_24h: int | None = None
    puzzle_7d: int | None = None
    snapshot_id: int | None = None

    def rating(self, kind: EventKind) -> int | None:
        return getattr(self, f"{kind.value}_rating")

    def total(self, kind: EventKind) -> int | None:
        return getattr(self, f"{kind.value}_total")

    def to_row(self) -> dict[str, object]:
        row = asdict(self)
        row.pop("snapshot_id")
        row["source"] = self.source.value
        return row


SNAPSHOT_COLUMNS = tuple(f.name for f in fields(StatsSnapshot) if f.name != "snapshot_id")


@dataclass(slots=True)
class CurrentStats:
    """Latest computed view for one student and platform."""

    student_id: str
    platform: Platform
    rapid_24h: int | None = None
    rapid_7d: int | None = None
    blitz_24h: int | None = None
    blitz_7d: int | None = None
    puzzle_24h: int | None = None
    puzzle_7d: int | None = None
    puzzle_total: int | None = None
    rapid_rating_delta_24h: int | None = None
    rapid_rating_delta_7d: int | None = None
    blitz_rating_delta_24h: int | None = None
    blitz_rating_delta_7d: int | None = None
    rapid_rating: int | None = None
    blitz_rating: int | None = None
    puzzle_rating: int | None = None
    computed_at: datetime | None = None
    last_update_ok: bool | None = None
    last_update_error_code: str | None = None
    last_update_error_message: str | None = None
    last_update_attempt_at: datetime | None = None

    def value(self, name: str) -> int | None:
        return getattr(self, name)

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["platform"] = self.platform.value
        return payload


@dataclass(slots=True)
class CurrentStatsUpdate:
    """Partial write for a CurrentStats row.

    ``computed_at`` is only written when the attempt succeeded; a failed
    attempt leaves the stored value untouched.
    """

    attempt_at: datetime
    ok: bool
    values: dict[str, int | None] = field(default_factory=dict)
    error_code: str | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        unknown = set(self.values) - set(CURRENT_STATS_VALUE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown current stats fields: {sorted(unknown)}")

    def to_columns(self) -> dict[str, object]:
        columns: dict[str, object] = dict(self.values)
        columns["last_update_ok"] = self.ok
        columns["last_update_error_code"] = self.error_code
        columns["last_update_error_message"] = self.error_message
        columns["last_update_attempt_at"] = self.attempt_at
        if self.ok:
            columns["computed_at"] = self.attempt_at
        return columns
