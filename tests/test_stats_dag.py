import os
import tempfile
import unittest
from datetime import timedelta
from pathlib import Path

import pytest

from chesstrack.dag_helpers__airflow import default_args, resolve_target


class _FakeDagRun:
    def __init__(self, conf=None):
        self.conf = conf


class DagHelpersTests(unittest.TestCase):
    def test_default_args_uses_expected_values(self) -> None:
        args = default_args()
        self.assertEqual(args["owner"], "chesstrack")
        self.assertFalse(args["depends_on_past"])
        self.assertEqual(args["retries"], 1)
        self.assertEqual(args["retry_delay"], timedelta(minutes=5))
        self.assertEqual(default_args(retries=3)["retries"], 3)

    def test_resolve_target_requires_both_fields(self) -> None:
        full = _FakeDagRun({"student_id": 42, "platform": "lichess"})
        self.assertEqual(resolve_target(full), {"student_id": "42", "platform": "lichess"})
        self.assertEqual(resolve_target(_FakeDagRun({"student_id": "42"})), {})
        self.assertEqual(resolve_target(_FakeDagRun(None)), {})
        self.assertEqual(resolve_target(None), {})


class StatsDagTests(unittest.TestCase):
    def setUp(self) -> None:
        pytest.importorskip("airflow")
        os.environ["AIRFLOW_HOME"] = tempfile.mkdtemp()

    def test_update_student_stats_dag_loads(self) -> None:
        from airflow.models.dagbag import DagBag

        dag_folder = Path(__file__).resolve().parents[1] / "airflow" / "dags"
        dagbag = DagBag(dag_folder=str(dag_folder), include_examples=False)

        self.assertFalse(dagbag.import_errors)
        dag = dagbag.dags.get("update_student_stats")
        self.assertIsNotNone(dag)
        self.assertEqual({task.task_id for task in dag.tasks}, {"run_stats_sync"})
        self.assertFalse(dag.catchup)
        self.assertEqual(dag.max_active_runs, 1)
