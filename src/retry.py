"""
Bounded retry and polling helpers.

Every mutating AWS call runs inside a fixed-duration retry window. Errors the
caller classifies as retryable are retried with exponential backoff until the
window closes; then exactly one more attempt is made and its result (or
error) is returned. Anything else is raised on the spot.

Polling waits are separate: they succeed only once a target state is
observed and fail when their own deadline passes.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Collection, Optional, TypeVar

from botocore.exceptions import ClientError

from errors import UnexpectedStateError, WaitTimeoutError, never_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class RetryPolicy:
    """Timing for retry windows and polling waits, in seconds."""

    timeout: float = 240.0
    min_delay: float = 0.5
    max_delay: float = 10.0
    wait_timeout: float = 300.0
    poll_interval: float = 5.0


def _default_clock() -> float:
    return asyncio.get_running_loop().time()


async def retry_call(
    operation: Callable[[], Awaitable[T]],
    *,
    retryable: Callable[[BaseException], bool] = never_retry,
    policy: Optional[RetryPolicy] = None,
    description: str = "operation",
    clock: Optional[Clock] = None,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """
    Run an async operation inside a bounded retry window.

    Args:
        operation: Zero-argument coroutine function performing one attempt.
        retryable: Predicate deciding whether a ClientError is worth retrying.
        policy: Window length and backoff delays.
        description: Used in log messages.
        clock: Monotonic clock, defaults to the running loop's clock.
        sleep: Coroutine function used to wait between attempts.

    Returns:
        The operation's result.

    Raises:
        ClientError: A non-retryable error, or the error of the final
            attempt made after the window closed.
    """
    policy = policy or RetryPolicy()
    clock = clock or _default_clock
    deadline = clock() + policy.timeout
    delay = policy.min_delay
    attempt = 0

    while True:
        attempt += 1
        try:
            return await operation()
        except ClientError as e:
            if not retryable(e):
                raise
            logger.debug(f"Retryable error on {description} (attempt {attempt}): {e}")

        remaining = deadline - clock()
        if remaining <= 0:
            break
        await sleep(min(delay, remaining))
        delay = min(delay * 2, policy.max_delay)

    logger.warning(
        f"Retry window of {policy.timeout}s elapsed for {description} after "
        f"{attempt} attempts, making a final attempt"
    )
    return await operation()


async def wait_for_state(
    fetch: Callable[[], Awaitable[Optional[str]]],
    *,
    target: Collection[str],
    pending: Collection[str] = (),
    timeout: float = 300.0,
    poll_interval: float = 5.0,
    description: str = "resource",
    clock: Optional[Clock] = None,
    sleep: Sleep = asyncio.sleep,
) -> str:
    """
    Poll until fetch() reports one of the target states.

    A fetch result of None (not visible yet) counts as pending.

    Returns:
        The target state that was observed.

    Raises:
        UnexpectedStateError: A state outside both target and pending.
        WaitTimeoutError: No target state before the deadline.
    """
    clock = clock or _default_clock
    deadline = clock() + timeout
    last_state = None

    while True:
        state = await fetch()
        if state in target:
            return state
        if state is not None and state not in pending:
            raise UnexpectedStateError(
                f"unexpected state '{state}' while waiting for {description}, "
                f"wanted one of {sorted(target)}"
            )
        last_state = state

        remaining = deadline - clock()
        if remaining <= 0:
            raise WaitTimeoutError(
                f"timeout after {timeout}s waiting for {description} "
                f"(last state: {last_state})"
            )
        logger.debug(
            f"{description} state: {state}, waiting {poll_interval}s..."
        )
        await sleep(min(poll_interval, remaining))
