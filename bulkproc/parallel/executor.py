"""
Retrying Request Executor for bulk processing.

Wraps one upstream completion call (one document, one task) with:
    - A rate-limit check before every attempt
    - An enforced per-request timeout
    - Exponential backoff with jitter for transient failures
    - Cost calculation from the reported token usage

Cost is reported to the usage sink only after the attempt that succeeds,
so retries never double-report.
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Protocol

from ..errors import (
    BulkProcError,
    EmptyResponseError,
    UpstreamTimeoutError,
)
from ..pricing import DEFAULT_MODEL, calculate_cost
from ..types import (
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    Document,
    TaskSpec,
)
from .rate_limiter import WindowRateLimiter

logger = logging.getLogger(__name__)


class CompletionTransport(Protocol):
    """Anything that can send one chat completion request upstream."""

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        ...


@dataclass(frozen=True)
class UsageRecord:
    """Usage of one successful upstream call.

    Attributes:
        document_id: Document the call processed
        model: Model identifier the call was billed under
        input_tokens: Prompt tokens reported upstream
        output_tokens: Completion tokens reported upstream
        cost: USD cost computed by the Cost Model
    """

    document_id: str
    model: str
    input_tokens: int
    output_tokens: int
    cost: float


class UsageSink(Protocol):
    def record(self, usage: UsageRecord) -> None:
        ...


class CostLedger:
    """
    In-memory usage sink the caller drains for budget tracking.

    Example:
        >>> ledger = CostLedger()
        >>> executor = RetryingExecutor(transport, limiter, usage_sink=ledger)
        >>> ...
        >>> for record in ledger.drain():
        ...     charge(record.cost)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: List[UsageRecord] = []
        self._total_cost = 0.0

    def record(self, usage: UsageRecord) -> None:
        with self._lock:
            self._records.append(usage)
            self._total_cost += usage.cost

    @property
    def total_cost(self) -> float:
        return self._total_cost

    @property
    def records(self) -> List[UsageRecord]:
        with self._lock:
            return list(self._records)

    def drain(self) -> List[UsageRecord]:
        """Return pending records and clear them (the running total is kept)."""
        with self._lock:
            records, self._records = self._records, []
            return records


@dataclass(frozen=True)
class CompletionOutcome:
    """Successful result of one document's execution.

    Attributes:
        text: Generated text
        input_tokens: Prompt tokens of the successful attempt
        output_tokens: Completion tokens of the successful attempt
        cost: USD cost of the successful attempt
        attempts: Number of upstream attempts made
    """

    text: str
    input_tokens: int
    output_tokens: int
    cost: float
    attempts: int = 1

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens


class RetryingExecutor:
    """
    Executes one document against the upstream service with retries.

    Example:
        >>> executor = RetryingExecutor(transport, WindowRateLimiter())
        >>> outcome = await executor.execute(document, TaskSpec("summarize"))
        >>> outcome.text, outcome.cost
    """

    def __init__(
        self,
        transport: CompletionTransport,
        rate_limiter: WindowRateLimiter,
        model: str = DEFAULT_MODEL,
        request_timeout: float = 60.0,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        backoff_jitter: float = 0.25,
        usage_sink: Optional[UsageSink] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the executor.

        Args:
            transport: Upstream completion transport
            rate_limiter: Limiter consulted before every attempt
            model: Model identifier sent upstream and used for pricing
            request_timeout: Seconds allowed per upstream attempt
            max_retries: Retries after the first attempt
            backoff_base: Delay before the first retry; doubles per attempt
            backoff_jitter: Upper bound of random seconds added to each delay
            usage_sink: Receives one UsageRecord per successful call
            sleep: Awaitable sleep (injectable for tests)
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

        self._transport = transport
        self._rate_limiter = rate_limiter
        self._model = model
        self._request_timeout = request_timeout
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._backoff_jitter = backoff_jitter
        self._usage_sink = usage_sink
        self._sleep = sleep

    @property
    def model(self) -> str:
        return self._model

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def build_request(self, document: Document, task_spec: TaskSpec) -> CompletionRequest:
        return CompletionRequest(
            model=self._model,
            messages=[
                ChatMessage(role="system", content=task_spec.system_prompt),
                ChatMessage(role="user", content=document.content),
            ],
            temperature=task_spec.temperature,
            max_tokens=task_spec.max_tokens,
        )

    def backoff_delay(self, attempt: int) -> float:
        delay = self._backoff_base * (2**attempt)
        if self._backoff_jitter > 0:
            delay += random.uniform(0, self._backoff_jitter)
        return delay

    async def execute(self, document: Document, task_spec: TaskSpec) -> CompletionOutcome:
        """
        Process one document, retrying transient failures.

        Args:
            document: Document whose content becomes the user message
            task_spec: Task supplying prompt, temperature and max tokens

        Returns:
            CompletionOutcome for the successful attempt

        Raises:
            RateLimitedError: Limiter rejected an attempt (not retried)
            EmptyResponseError: Upstream returned no usable text
            UpstreamError: Permanent upstream rejection, or last transient
                failure after retries are exhausted
            UpstreamTimeoutError, TransportError: Last transient failure
        """
        request = self.build_request(document, task_spec)

        for attempt in range(self._max_retries + 1):
            self._rate_limiter.check()

            try:
                response = await self._send(request)
            except BulkProcError as e:
                if not e.retryable or attempt >= self._max_retries:
                    raise
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "Document %s attempt %d/%d failed, retrying in %.1fs: %s",
                    document.id,
                    attempt + 1,
                    self._max_retries + 1,
                    delay,
                    str(e)[:200],
                )
                await self._sleep(delay)
                continue

            return self._settle(document, response, attempt + 1)

        raise RuntimeError("Unexpected state in RetryingExecutor.execute")

    async def _send(self, request: CompletionRequest) -> CompletionResponse:
        try:
            return await asyncio.wait_for(
                self._transport.complete(request),
                timeout=self._request_timeout,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError(self._request_timeout) from e

    def _settle(
        self,
        document: Document,
        response: CompletionResponse,
        attempts: int,
    ) -> CompletionOutcome:
        text = response.text
        if not text or not text.strip():
            raise EmptyResponseError()

        usage = response.usage
        cost = calculate_cost(self._model, usage.prompt_tokens, usage.completion_tokens)
        self._report_usage(
            UsageRecord(
                document_id=document.id,
                model=self._model,
                input_tokens=usage.prompt_tokens,
                output_tokens=usage.completion_tokens,
                cost=cost,
            )
        )
        return CompletionOutcome(
            text=text,
            input_tokens=usage.prompt_tokens,
            output_tokens=usage.completion_tokens,
            cost=cost,
            attempts=attempts,
        )

    def _report_usage(self, usage: UsageRecord) -> None:
        if self._usage_sink is None:
            return
        try:
            self._usage_sink.record(usage)
        except Exception as e:
            # Budget tracking must never fail the document.
            logger.warning("Usage sink failed for %s: %s", usage.document_id, e)
