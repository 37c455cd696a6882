import sys
from unittest.mock import MagicMock

import pytest

from bulkproc.tracking import MlflowLogger

SUMMARY = {"total": 3, "successful": 2, "failed": 0, "skipped": 1, "totalCost": 0.0002}


@pytest.fixture
def fake_mlflow(monkeypatch):
    module = MagicMock()
    module.active_run.return_value = None
    monkeypatch.setitem(sys.modules, "mlflow", module)
    return module


def test_disabled_by_default(monkeypatch, fake_mlflow):
    monkeypatch.delenv("BULKPROC_ENABLE_MLFLOW", raising=False)
    tracker = MlflowLogger()

    tracker.log_batch_summary("bulk-1", SUMMARY)

    assert not tracker.enabled
    fake_mlflow.log_metrics.assert_not_called()


def test_logs_summary_and_results(monkeypatch, fake_mlflow):
    monkeypatch.setenv("BULKPROC_ENABLE_MLFLOW", "1")
    monkeypatch.setenv("BULKPROC_MLFLOW_RUN_NAME", "nightly")
    tracker = MlflowLogger()

    tracker.log_batch_summary("bulk-1", SUMMARY)
    tracker.log_document_results("bulk-1", [{"documentId": "a", "status": "success"}])

    assert tracker.enabled
    fake_mlflow.start_run.assert_called_with(run_name="nightly")
    metrics = fake_mlflow.log_metrics.call_args.args[0]
    assert metrics["documents_successful"] == 2
    assert metrics["batch_cost_usd"] == 0.0002
    paths = [c.args[1] for c in fake_mlflow.log_dict.call_args_list]
    assert paths == ["batches/bulk-1/summary.json", "batches/bulk-1/results.json"]


def test_empty_results_not_logged(monkeypatch, fake_mlflow):
    monkeypatch.setenv("BULKPROC_ENABLE_MLFLOW", "true")
    tracker = MlflowLogger()

    tracker.log_document_results("bulk-1", [])

    fake_mlflow.log_dict.assert_not_called()
