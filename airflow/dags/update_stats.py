from __future__ import annotations

from airflow.decorators import dag, task
from airflow.operators.python import get_current_context
from airflow.utils import timezone

from chesstrack.app.use_cases.batch_sync import BatchSyncRequest, run_configured_batch_sync
from chesstrack.config import get_settings
from chesstrack.dag_helpers__airflow import default_args, resolve_target
from chesstrack.utils.logger import get_logger

logger = get_logger(__name__)

SCHEDULED_BATCH_LIMIT = 100


@dag(
    dag_id="update_student_stats",
    schedule="0 */6 * * *",
    start_date=timezone.datetime(2024, 1, 1),
    catchup=False,
    max_active_runs=1,
    default_args=default_args(),
    tags=["lichess", "chesscom", "chesstrack"],
    description="Refresh rolling game and puzzle counts for linked student accounts",
)
def update_student_stats_dag():
    @task(task_id="run_stats_sync")
    def run_stats_sync() -> dict[str, object]:
        context = get_current_context()
        dag_run = context.get("dag_run") if context else None
        target = resolve_target(dag_run)
        settings = get_settings()
        request = BatchSyncRequest(limit=SCHEDULED_BATCH_LIMIT, **target)
        logger.info("Starting stats sync target=%s", target or "roster")
        summary = run_configured_batch_sync(request, settings)
        logger.info(
            "Stats sync done: processed=%s succeeded=%s failed=%s timed_out=%s",
            summary.processed,
            summary.succeeded,
            summary.failed,
            summary.timed_out,
        )
        return summary.to_dict()

    run_stats_sync()


update_student_stats_dag()
