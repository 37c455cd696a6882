"""
Batch Processor for bulk document processing.

The submission layer in front of the scheduler:

Features:
    - Request-shape validation before the engine runs
    - Document normalization (default ids, names, string content)
    - Concurrency clamping to the service maximum
    - Result aggregation into a per-batch summary
    - JSON export of results
    - Optional MLflow tracking of each batch

Cost accounting:
    The batch cost is the sum of per-document costs, each computed from
    that document's own reported usage. Skipped and failed documents cost
    nothing; nothing is estimated.
"""

from __future__ import annotations

import json
import logging
import random
import string
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..errors import BatchValidationError
from ..pricing import MODEL_PRICING
from ..prompts import TASK_DESCRIPTIONS
from ..tracking import MlflowLogger
from ..types import (
    BatchOutcome,
    BatchSummary,
    Document,
    ProcessingResult,
    ResultStatus,
    TaskCategory,
    TaskSpec,
)
from .runner import HARD_MAX_CONCURRENCY, BatchScheduler

logger = logging.getLogger(__name__)

MAX_DOCUMENTS = 100
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
DEFAULT_CONCURRENCY = 5


@dataclass
class BulkRequest:
    """Validated batch submission.

    Attributes:
        documents: Normalized documents, in submission order
        task_spec: Task shared by every document
    """

    documents: List[Document]
    task_spec: TaskSpec


def _normalize_documents(raw_documents: List[Any]) -> List[Document]:
    documents: List[Document] = []
    for index, raw in enumerate(raw_documents):
        if isinstance(raw, Document):
            documents.append(raw)
            continue
        if not isinstance(raw, Mapping):
            raise BatchValidationError(f"documents[{index}] must be an object")
        documents.append(
            Document(
                id=str(raw.get("id") or f"doc-{index}"),
                name=str(raw.get("name") or f"document-{index}"),
                content=str(raw.get("content") or ""),
            )
        )
    return documents


def validate_bulk_request(
    payload: Mapping[str, Any],
    max_documents: int = MAX_DOCUMENTS,
    max_concurrency: int = HARD_MAX_CONCURRENCY,
) -> BulkRequest:
    """
    Validate a raw batch payload and build a BulkRequest.

    Payload keys: ``documents`` (list of {id, name, content}), ``task``,
    optional ``instructions``, ``temperature``, ``maxTokens``,
    ``concurrency``.

    Raises:
        BatchValidationError: On any request-shape violation
    """
    if not isinstance(payload, Mapping):
        raise BatchValidationError("request body must be an object")

    documents = payload.get("documents")
    if documents is None or not isinstance(documents, list):
        raise BatchValidationError("documents array is required")
    if len(documents) == 0:
        raise BatchValidationError("documents array cannot be empty")
    if len(documents) > max_documents:
        raise BatchValidationError(f"Maximum {max_documents} documents per request")

    task = payload.get("task")
    supported = [c.value for c in TaskCategory]
    if task not in supported:
        raise BatchValidationError(f"task must be one of: {', '.join(supported)}")

    instructions = payload.get("instructions")
    if instructions is not None and not isinstance(instructions, str):
        raise BatchValidationError("instructions must be a string")

    temperature = payload.get("temperature")
    temperature = DEFAULT_TEMPERATURE if temperature is None else temperature
    max_tokens = payload.get("maxTokens") or DEFAULT_MAX_TOKENS
    concurrency = payload.get("concurrency") or DEFAULT_CONCURRENCY

    try:
        task_spec = TaskSpec(
            category=TaskCategory(task),
            instructions=instructions,
            temperature=float(temperature),
            max_tokens=int(max_tokens),
            concurrency=min(int(concurrency), max_concurrency),
        )
    except (TypeError, ValueError) as e:
        raise BatchValidationError(str(e)) from e

    return BulkRequest(documents=_normalize_documents(documents), task_spec=task_spec)


def _new_job_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"bulk-{int(time.time() * 1000)}-{suffix}"


def summarize_results(results: List[ProcessingResult], total_time_ms: float) -> BatchSummary:
    """Aggregate per-document results into a BatchSummary."""
    total = len(results)
    return BatchSummary(
        total=total,
        successful=sum(1 for r in results if r.status is ResultStatus.SUCCESS),
        failed=sum(1 for r in results if r.status is ResultStatus.FAILED),
        skipped=sum(1 for r in results if r.status is ResultStatus.SKIPPED),
        total_cost=sum(r.cost for r in results),
        total_time_ms=total_time_ms,
        average_time_per_document_ms=total_time_ms / total if total else 0.0,
    )


class BatchProcessor:
    """
    Validates, runs and summarizes batch submissions.

    Example:
        >>> processor = BatchProcessor(scheduler)
        >>> outcome = await processor.process_payload({
        ...     "documents": [{"id": "a", "name": "a.txt", "content": "..."}],
        ...     "task": "summarize",
        ... })
        >>> outcome.summary.successful
    """

    def __init__(
        self,
        scheduler: BatchScheduler,
        tracker: Optional[MlflowLogger] = None,
        max_documents: int = MAX_DOCUMENTS,
        max_concurrency: int = HARD_MAX_CONCURRENCY,
        model: Optional[str] = None,
    ) -> None:
        """
        Initialize batch processor.

        Args:
            scheduler: Scheduler that runs each batch
            tracker: Optional MLflow tracker (default: env-configured)
            max_documents: Largest accepted batch
            max_concurrency: Ceiling for requested concurrency
            model: Model name reported by ``capabilities()``
        """
        self._scheduler = scheduler
        self._tracker = tracker or MlflowLogger()
        self._max_documents = max_documents
        self._max_concurrency = min(max_concurrency, scheduler.hard_max_concurrency)
        self._model = model

    async def process_payload(
        self,
        payload: Mapping[str, Any],
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> BatchOutcome:
        """Validate a raw payload and process it."""
        request = validate_bulk_request(
            payload,
            max_documents=self._max_documents,
            max_concurrency=self._max_concurrency,
        )
        return await self.process(request, progress_callback=progress_callback)

    async def process(
        self,
        request: BulkRequest,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> BatchOutcome:
        """
        Run one validated batch.

        Args:
            request: Validated submission
            progress_callback: Optional callback(completed, total)

        Returns:
            BatchOutcome with every per-document result and the summary
        """
        job_id = _new_job_id()
        task = request.task_spec.category.value
        start_time = time.perf_counter()

        logger.info(
            "Job %s: Processing %d documents with task=%r",
            job_id,
            len(request.documents),
            task,
        )

        results = await self._scheduler.process_batch(
            request.documents,
            request.task_spec,
            progress_callback=progress_callback,
        )

        total_time_ms = (time.perf_counter() - start_time) * 1000
        summary = summarize_results(results, total_time_ms)
        outcome = BatchOutcome(job_id=job_id, task=task, results=results, summary=summary)

        logger.info(
            "Job %s completed: %d/%d successful, %d failed, %d skipped, cost $%.4f",
            job_id,
            summary.successful,
            summary.total,
            summary.failed,
            summary.skipped,
            summary.total_cost,
        )

        self._tracker.log_batch_summary(job_id, summary.to_dict())
        self._tracker.log_document_results(job_id, [r.to_dict() for r in results])
        return outcome

    def capabilities(self) -> Dict[str, Any]:
        """Describe batch limits, supported tasks and pricing."""
        return {
            "maxDocuments": self._max_documents,
            "maxConcurrency": self._max_concurrency,
            "supportedTasks": [c.value for c in TaskCategory],
            "tasks": dict(TASK_DESCRIPTIONS),
            "model": self._model,
            "pricing": {
                name: {
                    "inputPerMillion": p.input_per_million,
                    "outputPerMillion": p.output_per_million,
                }
                for name, p in MODEL_PRICING.items()
            },
        }

    @staticmethod
    def save_results(outcome: BatchOutcome, path: Path | str) -> Path:
        """Write the outcome as JSON and return the written path."""
        output_file = Path(path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, "w") as f:
            json.dump(outcome.to_dict(), f, indent=2)

        logger.info("Saved results to %s", output_file)
        return output_file

    @staticmethod
    def get_failed_documents(
        outcome: BatchOutcome,
        documents: List[Document],
    ) -> List[Document]:
        """
        Get documents that failed processing.

        Args:
            outcome: Outcome of a processed batch
            documents: Documents submitted for that batch

        Returns:
            Failed documents, in submission order
        """
        failed_ids = {
            r.document_id for r in outcome.results if r.status is ResultStatus.FAILED
        }
        return [d for d in documents if d.id in failed_ids]
