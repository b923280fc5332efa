"""Retry policy with exponential backoff and jitter"""
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .timing import Clock, race_with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings for one upload

    Attributes:
        max_attempts: Total attempts, including the first one.
        timeout_seconds: Per-attempt budget; a fired timer counts as a failed attempt.
        base_delay_seconds: Delay before the second attempt.
        max_delay_seconds: Cap on the exponential part of the delay.
        jitter_seconds: Upper bound of the uniform random delay added on top.
    """
    max_attempts: int = 3
    timeout_seconds: float = 10.0
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 5.0
    jitter_seconds: float = 1.0

    def delay_for(self, attempt: int, rng: random.Random) -> float:
        """Backoff to wait after the given (1-based) failed attempt"""
        backoff = min(self.base_delay_seconds * (2 ** (attempt - 1)), self.max_delay_seconds)
        jitter = rng.uniform(0, self.jitter_seconds) if self.jitter_seconds > 0 else 0.0
        return backoff + jitter


async def run_with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    clock: Clock,
    rng: random.Random,
    label: str = "operation"
) -> T:
    """Call fn until it succeeds or the policy's attempts are used up

    Every attempt is raced against its own timer. Between attempts we sleep
    on the injected clock for the policy's backoff.

    Raises:
        Exception: The last attempt's error (UploadTimeoutError if its timer fired).
    """
    last_exc: Optional[Exception] = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await race_with_timeout(fn(), policy.timeout_seconds, clock, label)
            if attempt > 1:
                logger.info(f"{label} succeeded on attempt {attempt}/{policy.max_attempts}")
            return result
        except Exception as e:
            last_exc = e
            logger.warning(f"{label} attempt {attempt}/{policy.max_attempts} failed: {e}")
            if attempt >= policy.max_attempts:
                break
            delay = policy.delay_for(attempt, rng)
            logger.debug(f"Retrying {label} in {delay:.2f}s")
            await clock.sleep(delay)
    raise last_exc
