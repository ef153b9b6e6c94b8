"""
Named retry policies built on tenacity.

Every retried operation in the engine goes through one of these instead of
an inline loop-and-sleep, so attempts and backoff are declared in one place.
"""

import logging
from dataclasses import dataclass
from typing import Literal

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
    wait_incrementing,
)
from tenacity.retry import retry_base
from tenacity.wait import wait_base

logger = logging.getLogger(__name__)

Backoff = Literal["linear", "constant", "exponential"]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempts and backoff schedule for one kind of retried operation.

    Example:
        >>> gate = RetryPolicy("health-gate", max_attempts=5, base_delay=1.0)
        >>> # waits 1s, 2s, 3s, 4s between the five attempts
    """

    name: str
    max_attempts: int
    base_delay: float
    backoff: Backoff = "linear"

    def wait_strategy(self) -> wait_base:
        if self.backoff == "constant":
            return wait_fixed(self.base_delay)
        if self.backoff == "exponential":
            return wait_exponential(multiplier=self.base_delay, min=self.base_delay)
        return wait_incrementing(start=self.base_delay, increment=self.base_delay)

    def delays(self) -> list[float]:
        """Sleep durations between consecutive attempts."""
        if self.backoff == "constant":
            return [self.base_delay] * (self.max_attempts - 1)
        if self.backoff == "exponential":
            return [self.base_delay * 2**i for i in range(self.max_attempts - 1)]
        return [self.base_delay * (i + 1) for i in range(self.max_attempts - 1)]

    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            reason = repr(outcome.exception())
        else:
            reason = "check not satisfied"
        sleep = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"{self.name}: attempt {retry_state.attempt_number}/{self.max_attempts} failed "
            f"({reason}), retrying in {sleep:.1f}s"
        )

    def retrying(self, retry: retry_base, reraise: bool = True, **kwargs) -> AsyncRetrying:
        """
        Build an AsyncRetrying controller for this policy.

        Args:
            retry: tenacity retry condition (exception type and/or result predicate)
            reraise: Re-raise the last exception instead of tenacity.RetryError
            **kwargs: Extra AsyncRetrying arguments (e.g. retry_error_callback)
        """
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait_strategy(),
            retry=retry,
            before_sleep=self._log_retry,
            reraise=reraise,
            **kwargs,
        )
