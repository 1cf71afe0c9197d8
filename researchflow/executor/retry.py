"""Retry with exponential backoff for external calls.

Failures are classified by message content: rate limits, timeouts and
temporary unavailability are transient and retried; anything else fails
on the first attempt. Backoff doubles on each retry:

    attempt 1 -> fail -> sleep(base) -> attempt 2 -> fail -> sleep(2*base) -> attempt 3
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from researchflow.errors import ExternalCallError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERROR_MARKERS = (
    "429",
    "rate limit",
    "rate_limit",
    "timeout",
    "timed out",
    "temporarily unavailable",
    "overloaded",
)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 2.0

    def delay_before(self, attempt: int) -> float:
        """Backoff before ``attempt`` (2-indexed: the first retry)."""
        return self.base_delay * (2 ** (attempt - 2))


def is_transient_error(exc: BaseException) -> bool:
    if isinstance(exc, asyncio.TimeoutError):
        return True
    message = f"{type(exc).__name__}: {exc}".lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    label: str = "",
    timeout: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> tuple[T, int]:
    """Await ``fn()`` until it succeeds, retrying transient failures.

    Returns (value, attempts). Raises ExternalCallError, chained from the
    last failure, when a non-transient error occurs or attempts run out.
    Cancellation is never retried.
    """
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        if attempt > 1:
            delay = policy.delay_before(attempt)
            logger.warning(
                f"[{label}] Retry {attempt - 1}/{policy.max_attempts - 1} after {delay}s "
                f"(previous error: {last_error})"
            )
            await sleep(delay)

        try:
            if timeout is not None:
                value = await asyncio.wait_for(fn(), timeout=timeout)
            else:
                value = await fn()
            return value, attempt

        except asyncio.CancelledError:
            raise

        except Exception as e:
            last_error = e
            transient = is_transient_error(e)
            logger.error(
                f"[{label}] Attempt {attempt} failed "
                f"({'transient' if transient else 'not retrying'}): {e or type(e).__name__}"
            )
            if not transient:
                raise ExternalCallError(
                    label, attempt, False, f"Non-transient error: {e or type(e).__name__}"
                ) from e

    raise ExternalCallError(
        label,
        policy.max_attempts,
        True,
        f"Failed after {policy.max_attempts} attempts. Last error: {last_error or type(last_error).__name__}",
    ) from last_error
