from __future__ import annotations

import os
from typing import Any, Dict, List


class MlflowLogger:
    """
    Optional MLflow logger for bulk batches. Enabled by setting
    BULKPROC_ENABLE_MLFLOW=1 and installing the mlflow package.
    """

    def __init__(self) -> None:
        self._enabled = os.getenv("BULKPROC_ENABLE_MLFLOW", "0").lower() in (
            "1",
            "true",
            "yes",
        )
        self._mlflow = None
        self._run_name = os.getenv("BULKPROC_MLFLOW_RUN_NAME", "bulkproc")
        if self._enabled:
            try:
                import mlflow  # type: ignore

                self._mlflow = mlflow
            except ImportError:
                self._enabled = False
                self._mlflow = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    def log_batch_summary(self, job_id: str, summary: Dict[str, Any]) -> None:
        if not (self._enabled and self._mlflow):
            return
        self._log_dict(summary, f"batches/{job_id}/summary.json")
        self._log_metrics(
            {
                "documents_total": summary.get("total", 0),
                "documents_successful": summary.get("successful", 0),
                "documents_failed": summary.get("failed", 0),
                "documents_skipped": summary.get("skipped", 0),
                "batch_cost_usd": summary.get("totalCost", 0.0),
            }
        )

    def log_document_results(self, job_id: str, results: List[Dict[str, Any]]) -> None:
        if not (self._enabled and self._mlflow and results):
            return
        self._log_dict({"results": results}, f"batches/{job_id}/results.json")

    def _log_dict(self, data: Dict[str, Any], artifact_path: str) -> None:
        assert self._mlflow is not None
        self._in_run(lambda: self._mlflow.log_dict(data, artifact_path))

    def _log_metrics(self, metrics: Dict[str, float]) -> None:
        assert self._mlflow is not None
        self._in_run(lambda: self._mlflow.log_metrics(metrics))

    def _in_run(self, action) -> None:
        active = self._mlflow.active_run()
        if active:
            action()
            return

        with self._mlflow.start_run(run_name=self._run_name):
            action()
