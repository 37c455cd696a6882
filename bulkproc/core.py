from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from .config import EngineConfig, load_engine_config
from .parallel.batch_processor import BatchProcessor
from .parallel.executor import CompletionTransport, CostLedger, RetryingExecutor, UsageSink
from .parallel.rate_limiter import RateLimitStats, WindowRateLimiter
from .parallel.runner import BatchScheduler
from .tracking import MlflowLogger
from .types import BatchOutcome, Document, ProcessingResult, TaskSpec
from .utils import OpenAICompletionTransport, get_async_client, setup_logging

logger = logging.getLogger(__name__)


class BulkEngine:
    """
    High-level bulk completion engine.

    Pipeline:
        payload -> validation -> BatchScheduler -> RetryingExecutor
                -> WindowRateLimiter + upstream call -> summary

    The engine owns its rate limiter, so each engine instance (per process,
    per tenant, or per batch job) has independent request ceilings.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        transport: Optional[CompletionTransport] = None,
        usage_sink: Optional[UsageSink] = None,
        tracker: Optional[MlflowLogger] = None,
    ) -> None:
        self.config = config or load_engine_config()
        setup_logging(self.config.log_level)

        self.rate_limiter = WindowRateLimiter(
            requests_per_minute=self.config.requests_per_minute,
            requests_per_day=self.config.requests_per_day,
            enabled=self.config.rate_limit_enabled,
        )
        self.usage_sink = usage_sink if usage_sink is not None else CostLedger()
        self._transport = transport or OpenAICompletionTransport(get_async_client(self.config))
        self._executor = RetryingExecutor(
            transport=self._transport,
            rate_limiter=self.rate_limiter,
            model=self.config.model,
            request_timeout=self.config.request_timeout,
            max_retries=self.config.max_retries,
            backoff_base=self.config.backoff_base,
            backoff_jitter=self.config.backoff_jitter,
            usage_sink=self.usage_sink,
        )
        self._scheduler = BatchScheduler(
            self._executor,
            hard_max_concurrency=self.config.max_concurrency,
        )
        self._processor = BatchProcessor(
            self._scheduler,
            tracker=tracker,
            max_documents=self.config.max_documents,
            max_concurrency=self.config.max_concurrency,
            model=self.config.model,
        )

    async def process_bulk(self, payload: Mapping[str, Any]) -> BatchOutcome:
        return await self._processor.process_payload(payload)

    async def process_documents(
        self,
        documents: List[Document],
        task_spec: TaskSpec,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[ProcessingResult]:
        return await self._scheduler.process_batch(
            documents, task_spec, cancel_event=cancel_event
        )

    def rate_limit_stats(self) -> RateLimitStats:
        return self.rate_limiter.stats()

    def capabilities(self) -> Dict[str, Any]:
        return self._processor.capabilities()

    async def aclose(self) -> None:
        close = getattr(self._transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "BulkEngine":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()


def run_bulk_sync(
    payload: Mapping[str, Any],
    config: Optional[EngineConfig] = None,
    transport: Optional[CompletionTransport] = None,
) -> BatchOutcome:
    """
    Synchronous wrapper for batch processing.

    Example:
        >>> from bulkproc import run_bulk_sync
        >>> outcome = run_bulk_sync({"documents": docs, "task": "summarize"})
    """

    async def _run() -> BatchOutcome:
        async with BulkEngine(config=config, transport=transport) as engine:
            return await engine.process_bulk(payload)

    return asyncio.run(_run())
