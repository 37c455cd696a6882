"""Shared fakes for the bulk engine tests."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Union

import pytest

from bulkproc.errors import UpstreamError
from bulkproc.parallel import RetryingExecutor, WindowRateLimiter
from bulkproc.types import CompletionRequest, CompletionResponse, TokenUsage


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Awaitable sleep that records delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


Outcome = Union[CompletionResponse, Exception]


class FakeTransport:
    """
    Upstream double that counts calls per document content and tracks the
    peak number of concurrently outstanding calls.
    """

    def __init__(
        self,
        script: Optional[Callable[[str, int], Outcome]] = None,
        latency: float = 0.01,
        prompt_tokens: int = 100,
        completion_tokens: int = 50,
    ) -> None:
        self._script = script
        self._latency = latency
        self._prompt_tokens = prompt_tokens
        self._completion_tokens = completion_tokens
        self.calls: Dict[str, int] = defaultdict(int)
        self.requests: List[CompletionRequest] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        content = request.messages[-1].content
        self.calls[content] += 1
        self.requests.append(request)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._latency)
            if self._script is not None:
                outcome = self._script(content, self.calls[content])
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
            return CompletionResponse(
                text=f"processed: {content}",
                usage=TokenUsage(self._prompt_tokens, self._completion_tokens),
            )
        finally:
            self.in_flight -= 1


def server_error(content: str, call: int) -> Outcome:
    return UpstreamError(500, "Internal server error")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_executor(recording_sleep):
    def _make(
        transport: FakeTransport,
        limiter: Optional[WindowRateLimiter] = None,
        **kwargs,
    ) -> RetryingExecutor:
        kwargs.setdefault("backoff_jitter", 0.0)
        kwargs.setdefault("sleep", recording_sleep)
        return RetryingExecutor(
            transport=transport,
            rate_limiter=limiter or WindowRateLimiter(enabled=False),
            **kwargs,
        )

    return _make
