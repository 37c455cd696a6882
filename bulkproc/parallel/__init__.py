"""
bulkproc Parallel Processing Module.

Concurrent execution of many independent completion requests, one per
document, against a rate-limited upstream service.

Key Components:
    - WindowRateLimiter: Per-minute and per-day request ceilings
    - RetryingExecutor: One document, one upstream call, with timeout and backoff
    - BatchScheduler: Bounded-concurrency "race and refill" over a batch
    - BatchProcessor: Request validation, summary and export

Example:
    >>> from bulkproc.parallel import BatchScheduler, RetryingExecutor, WindowRateLimiter
    >>> executor = RetryingExecutor(transport, WindowRateLimiter())
    >>> results = await BatchScheduler(executor).process_batch(documents, task_spec)
"""

from .batch_processor import BatchProcessor, BulkRequest, summarize_results, validate_bulk_request
from .executor import CompletionOutcome, CompletionTransport, CostLedger, RetryingExecutor, UsageRecord
from .rate_limiter import RateLimitState, RateLimitStats, WindowRateLimiter
from .runner import HARD_MAX_CONCURRENCY, BatchScheduler

__all__ = [
    "BatchProcessor",
    "BulkRequest",
    "summarize_results",
    "validate_bulk_request",
    "CompletionOutcome",
    "CompletionTransport",
    "CostLedger",
    "RetryingExecutor",
    "UsageRecord",
    "RateLimitState",
    "RateLimitStats",
    "WindowRateLimiter",
    "HARD_MAX_CONCURRENCY",
    "BatchScheduler",
]
