"""
Request pacing and retry policy for calls to the eCFR API.

The rate limiter bounds how often any request may start; the retry policy
decides whether and when a failed attempt is repeated. Both take injectable
clock/sleep callables so they can be exercised without real waits.
"""

import time
from enum import Enum
from typing import Callable, List, Optional
import structlog
from pydantic import BaseModel, Field

from .models import FetchResult

logger = structlog.get_logger(__name__)


class FetchState(str, Enum):
    """States of a single (title, date) fetch."""
    PENDING = "pending"
    ATTEMPTING = "attempting"
    RETRY_WAIT = "retry_wait"
    SUCCESS = "success"
    PERMANENT_FAIL = "permanent_fail"


class FetchOutcome(BaseModel):
    """Final state of a fetch together with the path taken to reach it."""
    state: FetchState
    attempts: int
    result: Optional[FetchResult] = None
    history: List[FetchState] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state == FetchState.SUCCESS


class RateLimiter:
    """Enforces a minimum interval between consecutive requests."""

    def __init__(self, min_interval: float,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        if min_interval < 0:
            raise ValueError("min_interval must be non-negative")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request: Optional[float] = None

    def wait(self) -> float:
        """Block until the next request may start; returns seconds slept."""
        now = self._clock()
        waited = 0.0
        if self._last_request is not None:
            remaining = self.min_interval - (now - self._last_request)
            if remaining > 0:
                self._sleep(remaining)
                waited = remaining
        self._last_request = now + waited
        return waited

    def reset(self) -> None:
        self._last_request = None


class RetryPolicy:
    """Bounded retries with strictly increasing backoff between attempts."""

    def __init__(self, max_attempts: int = 3, backoff_seconds: float = 2.0,
                 backoff_factor: float = 2.0,
                 rate_limiter: Optional[RateLimiter] = None,
                 sleep: Callable[[float], None] = time.sleep):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if backoff_seconds <= 0:
            raise ValueError("backoff_seconds must be positive")
        if backoff_factor <= 1:
            raise ValueError("backoff_factor must be greater than 1")

        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.backoff_factor = backoff_factor
        self.rate_limiter = rate_limiter or RateLimiter(0.0)
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, sleep: Callable[[float], None] = time.sleep) -> "RetryPolicy":
        """Build the policy and its rate limiter from application settings."""
        return cls(
            max_attempts=settings.max_fetch_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
            backoff_factor=settings.retry_backoff_factor,
            rate_limiter=RateLimiter(settings.request_interval_seconds, sleep=sleep),
            sleep=sleep,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff to apply after the given (1-based) failed attempt."""
        return self.backoff_seconds * self.backoff_factor ** (attempt - 1)

    def execute(self, attempt_fn: Callable[[], FetchResult], **context) -> FetchOutcome:
        """Run ``attempt_fn`` until it succeeds or the attempt ceiling is reached.

        Args:
            attempt_fn: Performs exactly one request and reports its result
            **context: Extra key/value pairs included in log events

        Returns:
            FetchOutcome ending in SUCCESS or PERMANENT_FAIL
        """
        history = [FetchState.PENDING]
        attempts = 0

        while True:
            self.rate_limiter.wait()
            history.append(FetchState.ATTEMPTING)
            attempts += 1
            result = attempt_fn()

            if result.ok:
                history.append(FetchState.SUCCESS)
                return FetchOutcome(state=FetchState.SUCCESS, attempts=attempts,
                                    result=result, history=history)

            if attempts >= self.max_attempts:
                history.append(FetchState.PERMANENT_FAIL)
                logger.error("Fetch failed permanently", attempts=attempts,
                             status=result.status_code, error=result.error, **context)
                return FetchOutcome(state=FetchState.PERMANENT_FAIL, attempts=attempts,
                                    result=result, history=history)

            delay = self.delay_for(attempts)
            history.append(FetchState.RETRY_WAIT)
            logger.warning("Fetch attempt failed, retrying", attempt=attempts,
                           delay_seconds=delay, status=result.status_code,
                           error=result.error, **context)
            self._sleep(delay)
