"""Structured results of sync attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from chesstrack.domain.platform import Platform


class MetricMethod(StrEnum):
    HISTORY = "history"
    SNAPSHOT = "snapshot"
    RETAINED = "retained"


@dataclass(slots=True)
class SyncOutcome:
    """Result of syncing one student/platform connection."""

    student_id: str
    platform: Platform
    username: str | None
    ok: bool
    error_code: str | None = None
    error_message: str | None = None
    methods: dict[str, MetricMethod] = field(default_factory=dict)
    throttled: bool = False
    throttle_reason: str | None = None
    history_fetch_error: bool = False
    snapshot_appended: bool = False
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "student_id": self.student_id,
            "platform": self.platform.value,
            "username": self.username,
            "ok": self.ok,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "methods": {name: method.value for name, method in self.methods.items()},
            "throttled": self.throttled,
            "throttle_reason": self.throttle_reason,
            "history_fetch_error": self.history_fetch_error,
            "snapshot_appended": self.snapshot_appended,
            "warnings": list(self.warnings),
        }


@dataclass(slots=True)
class BatchSummary:
    """Aggregate result of a batch sync run."""

    outcomes: list[SyncOutcome] = field(default_factory=list)
    timed_out: bool = False
    remaining: int = 0

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return self.processed - self.succeeded

    @property
    def ok(self) -> bool:
        return self.failed == 0 and not self.timed_out

    def to_dict(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "timed_out": self.timed_out,
            "remaining": self.remaining,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }
