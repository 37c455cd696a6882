"""
Error taxonomy for the bulk completion engine.

Every error raised while processing one document derives from
``BulkProcError`` and is converted into a ``failed`` result at the
per-document boundary of the scheduler. Only ``BatchValidationError`` and
programmer errors (``TypeError``/``ValueError`` on malformed inputs) leave
a batch call.
"""

from __future__ import annotations

import math
from typing import Optional

# HTTP statuses that will not change on retry.
PERMANENT_STATUS_CODES = frozenset({400, 401, 403, 404, 422})


class BulkProcError(Exception):
    """Base class for engine errors."""

    retryable: bool = False


class RateLimitedError(BulkProcError):
    """Advisory request ceiling reached for the current window."""

    def __init__(self, scope: str, retry_after: Optional[float] = None) -> None:
        self.scope = scope
        self.retry_after = retry_after
        if scope == "minute" and retry_after is not None:
            message = f"Rate limit exceeded. Wait {max(0, math.ceil(retry_after))}s"
        else:
            message = "Daily rate limit exceeded. Please try again tomorrow."
        super().__init__(message)


class UpstreamTimeoutError(BulkProcError):
    retryable = True

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Upstream request timed out after {timeout}s")


class TransportError(BulkProcError):
    """Network failure before a response was received."""

    retryable = True


class UpstreamError(BulkProcError):
    """Non-success application response from the completion service."""

    def __init__(self, status_code: Optional[int], message: str = "Unknown error") -> None:
        self.status_code = status_code
        self.upstream_message = message
        super().__init__(f"Upstream API error: {status_code} - {message}")

    @property
    def permanent(self) -> bool:
        return self.status_code in PERMANENT_STATUS_CODES

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return not self.permanent


class EmptyResponseError(BulkProcError):
    def __init__(self, message: str = "No content in response") -> None:
        super().__init__(message)


class BatchValidationError(BulkProcError, ValueError):
    """Request-shape violation detected before the engine runs."""
