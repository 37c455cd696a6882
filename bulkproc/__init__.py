"""Bounded-concurrency bulk completion engine."""

from .config import EngineConfig, load_engine_config
from .core import BulkEngine, run_bulk_sync
from .errors import (
    BatchValidationError,
    BulkProcError,
    EmptyResponseError,
    RateLimitedError,
    TransportError,
    UpstreamError,
    UpstreamTimeoutError,
)
from .pricing import calculate_cost
from .types import (
    BatchOutcome,
    BatchSummary,
    Document,
    ProcessingResult,
    ResultStatus,
    TaskCategory,
    TaskSpec,
)

__all__ = [
    "EngineConfig",
    "load_engine_config",
    "BulkEngine",
    "run_bulk_sync",
    "BatchValidationError",
    "BulkProcError",
    "EmptyResponseError",
    "RateLimitedError",
    "TransportError",
    "UpstreamError",
    "UpstreamTimeoutError",
    "calculate_cost",
    "BatchOutcome",
    "BatchSummary",
    "Document",
    "ProcessingResult",
    "ResultStatus",
    "TaskCategory",
    "TaskSpec",
]
