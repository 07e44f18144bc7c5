"""Per-connection stats sync: direct window counts with snapshot-delta fallback."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from chesstrack.config import Settings
from chesstrack.domain.baseline_delta import (
    GRACE_7D,
    GRACE_24H,
    resolve_baseline_delta,
    resolve_rating_delta,
)
from chesstrack.domain.platform import GAME_KINDS, EventKind
from chesstrack.domain.stats_models import (
    RATING_DELTA_FIELDS,
    CurrentStats,
    CurrentStatsUpdate,
    PlatformConnection,
    ProfileSnapshot,
    StatsSnapshot,
    window_field,
)
from chesstrack.domain.sync_outcome import MetricMethod, SyncOutcome
from chesstrack.domain.window_counter import TimeWindows, build_time_windows, count_in_windows
from chesstrack.errors import (
    USERNAME_MISSING,
    AdapterError,
    ConfigurationError,
    PersistenceError,
    classify_error,
    truncate_error_message,
)
from chesstrack.ports.platform_client import PlatformClient, PlatformClientProvider
from chesstrack.ports.stats_store import StatsStore
from chesstrack.security.token_encryption import decrypt_token
from chesstrack.utils.logger import get_logger
from chesstrack.utils.now import Now

logger = get_logger(__name__)

TRACKED_KINDS: tuple[EventKind, ...] = (*GAME_KINDS, EventKind.PUZZLE)
GAME_WINDOW_FIELDS = tuple(
    window_field(kind, window) for kind in GAME_KINDS for window in ("24h", "7d")
)


@dataclass(frozen=True, slots=True)
class ThrottleDecision:
    run_history: bool
    reason: str


@dataclass(frozen=True, slots=True)
class SyncBaselines:
    """Snapshots used as references for the delta fallback."""

    latest: StatsSnapshot | None
    day: StatsSnapshot | None
    week: StatsSnapshot | None


def decide_history(
    connection: PlatformConnection,
    prior: CurrentStats | None,
    now: datetime,
    throttle_window: timedelta,
    *,
    treat_zero_as_unmeasured: bool = True,
) -> ThrottleDecision:
    """Decide whether direct window counting runs for this attempt.

    Direct counting runs when the connection was never synced, when the last
    direct fetch is older than ``throttle_window``, or when the previous game
    window values were never computed, are missing, or (unless disabled) are
    zero.
    """
    if connection.last_synced_at is None:
        return ThrottleDecision(True, "never_synced")
    if prior is None or prior.computed_at is None:
        return ThrottleDecision(True, "never_computed")
    previous = [prior.value(name) for name in GAME_WINDOW_FIELDS]
    if any(value is None for value in previous):
        return ThrottleDecision(True, "missing_values")
    if treat_zero_as_unmeasured and any(value == 0 for value in previous):
        return ThrottleDecision(True, "zero_values")
    if now - Now.as_utc(connection.last_synced_at) >= throttle_window:
        return ThrottleDecision(True, "throttle_elapsed")
    return ThrottleDecision(False, "throttled")


class StatsSyncOrchestrator:
    """Sync one student/platform connection at a time.

    Every failure inside ``sync_connection`` ends up in the returned
    ``SyncOutcome``; nothing propagates to the batch loop.
    """

    def __init__(
        self,
        store: StatsStore,
        clients: PlatformClientProvider,
        settings: Settings,
        *,
        clock: Callable[[], datetime] = Now.as_datetime,
        log: logging.Logger = logger,
    ) -> None:
        self._store = store
        self._clients = clients
        self._settings = settings
        self._clock = clock
        self._logger = log

    def sync_connection(self, connection: PlatformConnection) -> SyncOutcome:
        """Run one sync attempt and return its outcome."""
        username = connection.normalized_username
        if not username:
            self._logger.warning(
                "Skipping %s/%s: no platform username",
                connection.student_id,
                connection.platform,
            )
            return SyncOutcome(
                student_id=connection.student_id,
                platform=connection.platform,
                username=connection.username,
                ok=False,
                error_code=USERNAME_MISSING,
                error_message="Connection has no platform username",
            )
        windows = build_time_windows(self._clock())
        try:
            outcome = self._sync(connection, username, windows)
        except Exception as exc:  # noqa: BLE001 - recorded on the outcome
            self._logger.exception(
                "Sync failed for %s/%s (%s)",
                connection.student_id,
                connection.platform,
                username,
            )
            outcome = SyncOutcome(
                student_id=connection.student_id,
                platform=connection.platform,
                username=username,
                ok=False,
                error_code=classify_error(exc),
                error_message=truncate_error_message(exc),
            )
            self._record_failure(connection, windows.now, outcome)
        self._log_outcome(outcome)
        return outcome

    def _sync(
        self,
        connection: PlatformConnection,
        username: str,
        windows: TimeWindows,
    ) -> SyncOutcome:
        client = self._clients(connection.platform)
        store = self._store
        prior = store.fetch_current_stats(connection.student_id, connection.platform)
        baselines = SyncBaselines(
            latest=store.latest_snapshot(connection.student_id, connection.platform),
            day=store.find_baseline_snapshot(
                connection.student_id, windows.since_24h, connection.platform
            ),
            week=store.find_baseline_snapshot(
                connection.student_id, windows.since_7d, connection.platform
            ),
        )
        decision = decide_history(
            connection,
            prior,
            windows.now,
            timedelta(seconds=self._settings.throttle_seconds),
            treat_zero_as_unmeasured=self._settings.sync.treat_zero_as_unmeasured,
        )
        outcome = SyncOutcome(
            student_id=connection.student_id,
            platform=connection.platform,
            username=username,
            ok=False,
            throttled=not decision.run_history,
            throttle_reason=decision.reason,
        )
        # Only ``errors`` fail the attempt; ``warnings`` are reported on the outcome.
        errors: list[Exception] = []
        warnings: list[Exception] = []
        values: dict[str, int | None] = {}

        if decision.run_history:
            self._run_history(
                client, connection, username, windows, values, outcome, errors, warnings
            )

        # Without fresh counts the profile is the only source for this attempt.
        profile = self._fetch_profile(
            client, username, warnings if decision.run_history else errors
        )
        self._apply_fallback(profile, prior, baselines, windows, values, outcome)
        self._apply_ratings(profile, prior, baselines, windows, values)

        outcome.warnings = [
            f"{classify_error(exc)}: {truncate_error_message(exc)}" for exc in warnings
        ]
        if errors:
            outcome.error_code = classify_error(errors[0])
            outcome.error_message = truncate_error_message(errors[0])
            for name in RATING_DELTA_FIELDS:
                if values.get(name) is None:
                    values.pop(name, None)
        update = CurrentStatsUpdate(
            attempt_at=windows.now,
            ok=not errors,
            values=values,
            error_code=outcome.error_code,
            error_message=outcome.error_message,
        )
        store.upsert_current_stats(connection.student_id, connection.platform, update)
        outcome.ok = not errors

        if profile is not None:
            outcome.snapshot_appended = self._append_snapshot(
                connection, windows.now, profile, values
            )
        return outcome

    def _run_history(
        self,
        client: PlatformClient,
        connection: PlatformConnection,
        username: str,
        windows: TimeWindows,
        values: dict[str, int | None],
        outcome: SyncOutcome,
        errors: list[Exception],
        warnings: list[Exception],
    ) -> None:
        games_ok = True
        for kind in GAME_KINDS:
            try:
                counts = client.fetch_window_counts(username, kind, windows)
            except AdapterError as exc:
                games_ok = False
                outcome.history_fetch_error = True
                errors.append(exc)
                self._logger.warning(
                    "History fetch failed for %s/%s %s: %s",
                    connection.student_id,
                    connection.platform,
                    kind,
                    exc,
                )
                continue
            self._set_history(kind, counts.count_24h, counts.count_7d, values, outcome)

        if client.supports_puzzle_activity and connection.lichess_token_encrypted:
            try:
                token = decrypt_token(
                    connection.lichess_token_encrypted,
                    self._settings.lichess.encryption_key,
                )
                timestamps = client.fetch_puzzle_timestamps(token, windows.since_7d_ms)
            except (AdapterError, ConfigurationError) as exc:
                warnings.append(exc)
                self._logger.warning(
                    "Puzzle activity fetch failed for %s: %s", connection.student_id, exc
                )
            else:
                counts = count_in_windows(timestamps, windows)
                self._set_history(EventKind.PUZZLE, counts.count_24h, counts.count_7d, values, outcome)

        if games_ok:
            self._store.mark_connection_synced(
                connection.student_id, connection.platform, windows.now
            )
            connection.last_synced_at = windows.now

    @staticmethod
    def _set_history(
        kind: EventKind,
        count_24h: int,
        count_7d: int,
        values: dict[str, int | None],
        outcome: SyncOutcome,
    ) -> None:
        for window, count in (("24h", count_24h), ("7d", count_7d)):
            name = window_field(kind, window)
            values[name] = count
            outcome.methods[name] = MetricMethod.HISTORY

    def _fetch_profile(
        self,
        client: PlatformClient,
        username: str,
        failures: list[Exception],
    ) -> ProfileSnapshot | None:
        try:
            return client.fetch_current_profile(username)
        except AdapterError as exc:
            failures.append(exc)
            self._logger.warning("Profile fetch failed for %s: %s", username, exc)
            return None

    @staticmethod
    def _apply_fallback(
        profile: ProfileSnapshot | None,
        prior: CurrentStats | None,
        baselines: SyncBaselines,
        windows: TimeWindows,
        values: dict[str, int | None],
        outcome: SyncOutcome,
    ) -> None:
        references = (
            ("24h", baselines.day, windows.since_24h, GRACE_24H),
            ("7d", baselines.week, windows.since_7d, GRACE_7D),
        )
        for kind in TRACKED_KINDS:
            current_total = profile.total(kind) if profile else None
            for window, baseline, window_start, grace in references:
                name = window_field(kind, window)
                if name in values:
                    continue
                delta = resolve_baseline_delta(
                    current_total,
                    baseline.total(kind) if baseline else None,
                    baseline.captured_at if baseline else None,
                    window_start,
                    grace,
                )
                if delta is None:
                    values[name] = prior.value(name) if prior else None
                    outcome.methods[name] = MetricMethod.RETAINED
                else:
                    values[name] = delta
                    outcome.methods[name] = MetricMethod.SNAPSHOT
        if profile is not None and profile.puzzle_total is not None:
            values["puzzle_total"] = profile.puzzle_total
        else:
            values["puzzle_total"] = prior.puzzle_total if prior else None

    @staticmethod
    def _apply_ratings(
        profile: ProfileSnapshot | None,
        prior: CurrentStats | None,
        baselines: SyncBaselines,
        windows: TimeWindows,
        values: dict[str, int | None],
    ) -> None:
        for kind in TRACKED_KINDS:
            name = f"{kind.value}_rating"
            rating = profile.rating(kind) if profile else None
            if rating is None and baselines.latest is not None:
                rating = baselines.latest.rating(kind)
            if rating is None and prior is not None:
                rating = prior.value(name)
            values[name] = rating
        for kind in GAME_KINDS:
            rating = values[f"{kind.value}_rating"]
            for window, baseline, window_start, grace in (
                ("24h", baselines.day, windows.since_24h, GRACE_24H),
                ("7d", baselines.week, windows.since_7d, GRACE_7D),
            ):
                values[f"{kind.value}_rating_delta_{window}"] = resolve_rating_delta(
                    rating,
                    baseline.rating(kind) if baseline else None,
                    baseline.captured_at if baseline else None,
                    window_start,
                    grace,
                )

    def _append_snapshot(
        self,
        connection: PlatformConnection,
        captured_at: datetime,
        profile: ProfileSnapshot,
        values: dict[str, int | None],
    ) -> bool:
        snapshot = StatsSnapshot(
            student_id=connection.student_id,
            source=connection.platform,
            captured_at=captured_at,
            rapid_rating=profile.rapid_rating,
            blitz_rating=profile.blitz_rating,
            puzzle_rating=profile.puzzle_rating,
            rapid_total=profile.rapid_total,
            blitz_total=profile.blitz_total,
            puzzle_total=profile.puzzle_total,
            rapid_24h=values.get("rapid_24h"),
            rapid_7d=values.get("rapid_7d"),
            blitz_24h=values.get("blitz_24h"),
            blitz_7d=values.get("blitz_7d"),
            puzzle_24h=values.get("puzzle_24h"),
            puzzle_7d=values.get("puzzle_7d"),
        )
        try:
            self._store.append_snapshot(snapshot)
        except PersistenceError as exc:
            self._logger.warning(
                "Snapshot append failed for %s/%s: %s",
                connection.student_id,
                connection.platform,
                exc,
            )
            return False
        return True

    def _record_failure(
        self,
        connection: PlatformConnection,
        attempt_at: datetime,
        outcome: SyncOutcome,
    ) -> None:
        update = CurrentStatsUpdate(
            attempt_at=attempt_at,
            ok=False,
            error_code=outcome.error_code,
            error_message=outcome.error_message,
        )
        try:
            self._store.upsert_current_stats(connection.student_id, connection.platform, update)
        except PersistenceError as exc:
            self._logger.error(
                "Could not record failed attempt for %s/%s: %s",
                connection.student_id,
                connection.platform,
                exc,
            )

    def _log_outcome(self, outcome: SyncOutcome) -> None:
        if outcome.ok:
            self._logger.info(
                "Synced %s/%s (%s) throttled=%s methods=%s warnings=%s",
                outcome.student_id,
                outcome.platform,
                outcome.username,
                outcome.throttled,
                {name: method.value for name, method in outcome.methods.items()},
                outcome.warnings,
            )
            return
        self._logger.warning(
            "Sync attempt for %s/%s (%s) failed: %s %s",
            outcome.student_id,
            outcome.platform,
            outcome.username,
            outcome.error_code,
            outcome.error_message,
        )
