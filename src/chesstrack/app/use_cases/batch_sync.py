"""Batch entrypoint invoked by the scheduler and the jobs API."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from chesstrack.app.use_cases.sync_stats import StatsSyncOrchestrator
from chesstrack.chess_clients.client_factory import PlatformClientFactory
from chesstrack.config import Settings, get_settings
from chesstrack.db.stats_repository_provider import open_stats_store
from chesstrack.domain.platform import Platform
from chesstrack.domain.stats_models import PlatformConnection
from chesstrack.domain.sync_outcome import BatchSummary
from chesstrack.errors import InvalidRequestError, NotFoundError
from chesstrack.ports.platform_client import PlatformClientProvider
from chesstrack.ports.stats_store import StatsStore
from chesstrack.utils.logger import get_logger
from chesstrack.utils.now import Now

logger = get_logger(__name__)


@dataclass(slots=True)
class BatchSyncRequest:
    """Either a single ``student_id``/``platform`` target or a page of the roster."""

    student_id: str | None = None
    platform: str | None = None
    limit: int | None = None
    offset: int = 0

    @property
    def is_targeted(self) -> bool:
        return bool(self.student_id) or bool(self.platform)


def clamp_limit(limit: int | None, settings: Settings) -> int:
    """Clamp a page size to ``1..max_limit``, defaulting when unset."""
    if limit is None:
        return settings.sync.default_limit
    return max(1, min(limit, settings.sync.max_limit))


def select_connections(
    store: StatsStore,
    request: BatchSyncRequest,
    settings: Settings,
) -> list[PlatformConnection]:
    """Resolve the connections a batch request covers.

    Raises:
        InvalidRequestError: When a target is incomplete or names an unknown platform.
        NotFoundError: When the targeted connection does not exist.
    """
    if request.is_targeted:
        if not request.student_id or not request.platform:
            raise InvalidRequestError("student_id and platform must be supplied together")
        try:
            platform = Platform.parse(request.platform)
        except ValueError as exc:
            raise InvalidRequestError(str(exc)) from exc
        connection = store.get_connection(request.student_id, platform)
        if connection is None:
            raise NotFoundError(
                f"No {platform} connection for student {request.student_id}"
            )
        return [connection]
    return store.list_connections(clamp_limit(request.limit, settings), max(0, request.offset))


def run_batch_sync(
    store: StatsStore,
    clients: PlatformClientProvider,
    settings: Settings,
    request: BatchSyncRequest | None = None,
    *,
    clock: Callable[[], datetime] = Now.as_datetime,
    monotonic: Callable[[], float] = time.monotonic,
    deadline_s: float | None = None,
) -> BatchSummary:
    """Sync a page of connections, least recently synced first.

    Connections are processed one at a time. Once ``deadline_s`` (default from
    settings) has elapsed the remaining queue is abandoned and the summary is
    marked ``timed_out``.

    Args:
        store: Stats store.
        clients: Returns the client for a platform.
        settings: Active settings.
        request: Target or page; defaults to the first page.
        clock: Source of the current UTC time for each attempt.
        monotonic: Monotonic clock used for the deadline.
        deadline_s: Overall time budget in seconds.

    Returns:
        Per-connection outcomes and aggregate counts.

    Raises:
        InvalidRequestError: For malformed targets.
        NotFoundError: When the targeted connection is missing.
        PersistenceError: When the roster cannot be loaded.
    """
    request = request or BatchSyncRequest()
    connections = select_connections(store, request, settings)
    orchestrator = StatsSyncOrchestrator(store, clients, settings, clock=clock)
    budget = settings.sync.batch_deadline_s if deadline_s is None else deadline_s
    deadline = monotonic() + budget
    summary = BatchSummary()
    logger.info("Starting stats sync for %s connection(s)", len(connections))
    for index, connection in enumerate(connections):
        if monotonic() >= deadline:
            summary.timed_out = True
            summary.remaining = len(connections) - index
            logger.warning(
                "Batch deadline of %.0fs reached; %s connection(s) left unprocessed",
                budget,
                summary.remaining,
            )
            break
        summary.outcomes.append(orchestrator.sync_connection(connection))
    logger.info(
        "Stats sync finished: processed=%s succeeded=%s failed=%s",
        summary.processed,
        summary.succeeded,
        summary.failed,
    )
    return summary


def run_configured_batch_sync(
    request: BatchSyncRequest | None = None,
    settings: Settings | None = None,
) -> BatchSummary:
    """Open the configured store and platform clients and run one batch."""
    settings = settings or get_settings()
    with open_stats_store(settings) as store:
        return run_batch_sync(store, PlatformClientFactory(settings), settings, request)
