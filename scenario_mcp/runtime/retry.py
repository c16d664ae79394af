from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, wait_fixed

logger = logging.getLogger(__name__)

Retryable = Callable[[], Any]
Sleep = Callable[[float], Awaitable[None]]


def should_retry(step_attempt: int, max_attempts: int, has_error: bool) -> bool:
    if not has_error:
        return False
    return step_attempt < max_attempts


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 3
    delay_ms: int = 1000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be a positive integer")
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be non-negative")


class RetryState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


class RetryExecution:
    """One bounded series of attempts of a single operation.

    Attempt 1 runs immediately. After a failure the execution waits
    ``policy.delay_ms`` and tries again until ``policy.max_attempts`` is
    reached, at which point the last exception is re-raised unchanged.
    """

    def __init__(self, policy: RetryPolicy | None = None, sleep: Sleep = asyncio.sleep) -> None:
        self.policy = policy or RetryPolicy()
        self.attempts_made = 0
        self.last_error: BaseException | None = None
        self.state = RetryState.IDLE
        self._sleep = sleep

    async def run(self, operation: Retryable) -> Any:
        if self.state is not RetryState.IDLE:
            raise RuntimeError("RetryExecution instances run only once")

        retrying = AsyncRetrying(
            stop=self._stop,
            wait=wait_fixed(self.policy.delay_ms / 1000),
            retry=retry_if_exception_type(Exception),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            result = await retrying(self._attempt, operation)
        except Exception as exc:
            self.state = RetryState.EXHAUSTED
            self.last_error = exc
            logger.warning(f"Giving up after {self.attempts_made} attempt(s): {exc!r}")
            raise

        self.state = RetryState.SUCCESS
        if self.attempts_made > 1:
            logger.info(f"Operation succeeded on attempt {self.attempts_made}/{self.policy.max_attempts}")
        return result

    async def _attempt(self, operation: Retryable) -> Any:
        self.attempts_made += 1
        self.state = RetryState.ATTEMPTING
        outcome = operation()
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome

    def _stop(self, retry_state: RetryCallState) -> bool:
        failed = retry_state.outcome is not None and retry_state.outcome.failed
        return not should_retry(self.attempts_made, self.policy.max_attempts, has_error=failed)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        self.state = RetryState.WAITING
        if retry_state.outcome is not None:
            self.last_error = retry_state.outcome.exception()
        logger.debug(
            f"Attempt {self.attempts_made}/{self.policy.max_attempts} failed "
            f"({self.last_error!r}); retrying in {self.policy.delay_ms} ms"
        )


async def retry(operation: Retryable, policy: RetryPolicy | None = None) -> Any:
    return await RetryExecution(policy).run(operation)
