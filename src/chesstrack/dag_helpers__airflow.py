from __future__ import annotations

from datetime import timedelta


def default_args(*, retries: int = 1) -> dict[str, object]:
    return {
        "owner": "chesstrack",
        "depends_on_past": False,
        "retries": retries,
        "retry_delay": timedelta(minutes=5),
        "retry_exponential_backoff": True,
        "max_retry_delay": timedelta(minutes=20),
    }


def resolve_target(dag_run) -> dict[str, str]:
    """Return ``student_id``/``platform`` from the run conf when both are present."""
    if not dag_run:
        return {}
    conf = getattr(dag_run, "conf", None)
    if not isinstance(conf, dict):
        return {}
    student_id = conf.get("student_id")
    platform = conf.get("platform")
    if not student_id or not platform:
        return {}
    return {"student_id": str(student_id), "platform": str(platform)}
