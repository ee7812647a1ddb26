"""Bounded retries with exponential backoff and jitter for remote calls."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from accession_resolver.config import ResolverConfig
from accession_resolver.errors import ExhaustedError, TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    base_delay: float = 3.0
    jitter: float = 2.0

    @classmethod
    def from_config(cls, config: ResolverConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_retry_attempts,
            base_delay=config.retry_base_delay,
            jitter=config.retry_jitter,
        )


class RetryExecutor:
    """Run an operation, retrying only on TransientError.

    The n-th retry waits ``base_delay * 2**(n-1)`` plus a uniform jitter in
    ``[0, jitter]``. NotFound and any other exception propagate after the
    first attempt. Running out of attempts raises ExhaustedError.
    """

    def __init__(
        self,
        policy: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.policy = policy
        self._sleep = sleep

    def execute(self, operation: Callable[..., T], *args, description: str = "", **kwargs) -> T:
        description = description or getattr(operation, "__name__", "remote call")
        retrying = Retrying(
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=(
                wait_exponential(multiplier=self.policy.base_delay)
                + wait_random(0, self.policy.jitter)
            ),
            retry=retry_if_exception_type(TransientError),
            sleep=self._sleep,
            before_sleep=self._log_retry(description),
        )
        try:
            return retrying(operation, *args, **kwargs)
        except RetryError as exc:
            attempt = exc.last_attempt
            last_error = attempt.exception()
            logger.warning("%s failed after %d attempt(s): %s",
                           description, attempt.attempt_number, last_error)
            raise ExhaustedError(description, attempt.attempt_number, last_error) from last_error

    def _log_retry(self, description: str) -> Callable[[RetryCallState], None]:
        max_attempts = self.policy.max_attempts

        def log(state: RetryCallState) -> None:
            logger.info(
                "    %s attempt %d/%d failed (%s); retrying in %.1fs",
                description,
                state.attempt_number,
                max_attempts,
                state.outcome.exception() if state.outcome else "unknown error",
                state.next_action.sleep if state.next_action else 0.0,
            )

        return log
