"""
Rolling-window Rate Limiter for bulk processing.

Tracks requests issued in the current rolling minute and rolling day and
rejects a new attempt once either ceiling is reached. A rejection is
raised immediately as ``RateLimitedError``. The limiter never sleeps or
retries on its own.

Concurrency:
    - ``check()`` is synchronous, so under asyncio the check-and-increment
      runs without an intervening suspension point
    - A ``threading.Lock`` also guards it for callers sharing one limiter
      across threads
    - State is process-local; one instance per engine (or per tenant)

Default ceilings follow the DeepSeek API guidance:
    - 60 requests per minute
    - 10,000 requests per day
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from ..errors import RateLimitedError

logger = logging.getLogger(__name__)

MINUTE_SECONDS = 60.0
DAY_SECONDS = 86_400.0


@dataclass
class RateLimitState:
    """Counters and window starts for both rolling windows.

    Attributes:
        requests_this_minute: Requests admitted in the current minute window
        minute_start: Clock reading when the minute window opened
        requests_this_day: Requests admitted in the current day window
        day_start: Clock reading when the day window opened
    """

    requests_this_minute: int = 0
    minute_start: float = 0.0
    requests_this_day: int = 0
    day_start: float = 0.0


@dataclass(frozen=True)
class RateLimitStats:
    """Snapshot of rate limiter usage.

    Attributes:
        requests_this_minute: Requests admitted in the current minute window
        requests_this_day: Requests admitted in the current day window
        rate_limit_per_minute: Minute ceiling
        rate_limit_per_day: Day ceiling
        enabled: Whether the limiter enforces anything
    """

    requests_this_minute: int
    requests_this_day: int
    rate_limit_per_minute: int
    rate_limit_per_day: int
    enabled: bool


class WindowRateLimiter:
    """
    Two-window request counter consulted before every upstream call.

    Example:
        >>> limiter = WindowRateLimiter(requests_per_minute=60)
        >>> limiter.check()  # raises RateLimitedError at the ceiling
        >>> limiter.stats().requests_this_minute
        1

    Trusted internal jobs can turn enforcement off:
        >>> limiter = WindowRateLimiter(enabled=False)
        >>> limiter.check()  # no-op
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        requests_per_day: int = 10_000,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            requests_per_minute: Ceiling for the rolling minute window
            requests_per_day: Ceiling for the rolling day window
            enabled: When False, ``check()`` admits everything
            clock: Monotonic seconds source (injectable for tests)
        """
        if requests_per_minute <= 0 or requests_per_day <= 0:
            raise ValueError("Rate limit ceilings must be positive")

        self._per_minute = requests_per_minute
        self._per_day = requests_per_day
        self._enabled = enabled
        self._clock = clock
        self._lock = threading.Lock()

        now = clock()
        self._state = RateLimitState(minute_start=now, day_start=now)

        logger.info(
            "WindowRateLimiter initialized: %d/min, %d/day, enabled=%s",
            requests_per_minute,
            requests_per_day,
            enabled,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def check(self) -> None:
        """
        Admit one request or raise.

        Raises:
            RateLimitedError: If the minute or day ceiling has been reached.
                Minute rejections carry the seconds until the window resets.
        """
        if not self._enabled:
            return

        with self._lock:
            state = self._state
            now = self._clock()

            if now - state.minute_start > MINUTE_SECONDS:
                state.requests_this_minute = 0
                state.minute_start = now

            if now - state.day_start > DAY_SECONDS:
                state.requests_this_day = 0
                state.day_start = now

            if state.requests_this_minute >= self._per_minute:
                wait_time = MINUTE_SECONDS - (now - state.minute_start)
                logger.debug("Minute ceiling reached, %.1fs until reset", wait_time)
                raise RateLimitedError("minute", retry_after=max(0.0, wait_time))

            if state.requests_this_day >= self._per_day:
                logger.debug("Daily ceiling reached")
                raise RateLimitedError("day")

            state.requests_this_minute += 1
            state.requests_this_day += 1

    def stats(self) -> RateLimitStats:
        """Get current usage against both ceilings."""
        with self._lock:
            return RateLimitStats(
                requests_this_minute=self._state.requests_this_minute,
                requests_this_day=self._state.requests_this_day,
                rate_limit_per_minute=self._per_minute,
                rate_limit_per_day=self._per_day,
                enabled=self._enabled,
            )

    def reset(self) -> None:
        """Start both windows afresh."""
        with self._lock:
            now = self._clock()
            self._state = RateLimitState(minute_start=now, day_start=now)
