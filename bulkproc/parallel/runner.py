"""
Bounded-Concurrency Scheduler for bulk processing.

Drives a batch of documents through the Retrying Request Executor in
parallel without ever exceeding the concurrency ceiling.

Architecture:
    - Request-level parallelism on a single asyncio event loop
    - Blank documents are skipped up front (no slot, no rate-limit token)
    - "Race and refill": wait for the first in-flight document to settle,
      collect it, then top the in-flight set back up from the queue
    - Each document is isolated; its failure becomes a ``failed`` result

Guarantees:
    - Exactly one ProcessingResult per submitted document
    - Documents start in submission order; completion order follows
      upstream latency
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Deque, List, Optional, Set

from ..types import Document, ProcessingResult, ResultStatus, TaskSpec
from .executor import RetryingExecutor

logger = logging.getLogger(__name__)

HARD_MAX_CONCURRENCY = 10

EMPTY_CONTENT_REASON = "Document content is empty"
CANCELLED_REASON = "Batch cancelled before processing"


class BatchScheduler:
    """
    Concurrent document processor.

    Example:
        >>> scheduler = BatchScheduler(executor)
        >>> results = await scheduler.process_batch(documents, TaskSpec("summarize"))
        >>> [r.status.value for r in results]

    Cancellation:
        Pass an ``asyncio.Event`` as ``cancel_event``. Once set, no further
        document is started; in-flight documents finish and every document
        still queued is reported as failed.
    """

    def __init__(
        self,
        executor: RetryingExecutor,
        hard_max_concurrency: int = HARD_MAX_CONCURRENCY,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            executor: Executor used for every non-blank document
            hard_max_concurrency: Ceiling applied regardless of the task's
                requested concurrency
        """
        if hard_max_concurrency <= 0:
            raise ValueError("hard_max_concurrency must be positive")
        self._executor = executor
        self._hard_max = hard_max_concurrency

    @property
    def hard_max_concurrency(self) -> int:
        return self._hard_max

    async def process_batch(
        self,
        documents: List[Document],
        task_spec: TaskSpec,
        cancel_event: Optional[asyncio.Event] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> List[ProcessingResult]:
        """
        Process every document and return one result per document.

        Args:
            documents: Documents to process
            task_spec: Task shared by the whole batch
            cancel_event: Optional event that stops new documents from starting
            progress_callback: Optional callback(completed, total)

        Returns:
            ProcessingResult list, in completion order

        Raises:
            TypeError: If ``documents`` is not a list of Document or
                ``task_spec`` is not a TaskSpec
        """
        self._validate(documents, task_spec)

        total = len(documents)
        concurrency = task_spec.effective_concurrency(self._hard_max)
        results: List[ProcessingResult] = []
        queue: Deque[Document] = deque()

        for document in documents:
            if document.is_blank:
                results.append(
                    ProcessingResult(
                        document_id=document.id,
                        filename=document.name,
                        status=ResultStatus.SKIPPED,
                        error=EMPTY_CONTENT_REASON,
                    )
                )
            else:
                queue.append(document)

        logger.info(
            "Starting batch: %d documents (%d skipped), concurrency=%d",
            total,
            len(results),
            concurrency,
        )
        self._notify(progress_callback, len(results), total)

        in_flight: Set[asyncio.Task] = set()
        try:
            while queue or in_flight:
                while queue and len(in_flight) < concurrency and not self._cancelled(cancel_event):
                    document = queue.popleft()
                    in_flight.add(
                        asyncio.ensure_future(self._process_document(document, task_spec))
                    )

                if not in_flight:
                    break

                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    in_flight.discard(task)
                    results.append(task.result())
                    self._notify(progress_callback, len(results), total)
        finally:
            for task in in_flight:
                task.cancel()

        while queue:
            document = queue.popleft()
            results.append(
                ProcessingResult(
                    document_id=document.id,
                    filename=document.name,
                    status=ResultStatus.FAILED,
                    error=CANCELLED_REASON,
                )
            )

        logger.info(
            "Batch complete: %d results, %d successful",
            len(results),
            sum(1 for r in results if r.status is ResultStatus.SUCCESS),
        )
        return results

    async def _process_document(
        self,
        document: Document,
        task_spec: TaskSpec,
    ) -> ProcessingResult:
        """
        Execute one document and translate the outcome into a result.

        Never raises for per-document failures.
        """
        start_time = time.perf_counter()
        try:
            outcome = await self._executor.execute(document, task_spec)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Failed to process %s: %s",
                document.name,
                str(e)[:200],
            )
            return ProcessingResult(
                document_id=document.id,
                filename=document.name,
                status=ResultStatus.FAILED,
                error=str(e) or type(e).__name__,
                processing_time_ms=elapsed_ms,
            )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info("Processed: %s (%.0fms)", document.name, elapsed_ms)
        return ProcessingResult(
            document_id=document.id,
            filename=document.name,
            status=ResultStatus.SUCCESS,
            result=outcome.text,
            tokens_used=outcome.tokens_used,
            cost=outcome.cost,
            processing_time_ms=elapsed_ms,
        )

    @staticmethod
    def _validate(documents: List[Document], task_spec: TaskSpec) -> None:
        if not isinstance(task_spec, TaskSpec):
            raise TypeError(f"task_spec must be a TaskSpec, got {type(task_spec).__name__}")
        if not isinstance(documents, list):
            raise TypeError(f"documents must be a list, got {type(documents).__name__}")
        for document in documents:
            if not isinstance(document, Document):
                raise TypeError(
                    f"documents must contain Document items, got {type(document).__name__}"
                )

    @staticmethod
    def _cancelled(cancel_event: Optional[asyncio.Event]) -> bool:
        return cancel_event is not None and cancel_event.is_set()

    @staticmethod
    def _notify(
        progress_callback: Optional[Callable[[int, int], None]],
        completed: int,
        total: int,
    ) -> None:
        if progress_callback is None:
            return
        try:
            progress_callback(completed, total)
        except Exception as e:
            logger.warning("Progress callback failed: %s", e)
