"""CHESSTRACK package entrypoints."""

from chesstrack.app.use_cases.batch_sync import BatchSyncRequest, run_configured_batch_sync

__all__ = ["BatchSyncRequest", "run_configured_batch_sync"]
