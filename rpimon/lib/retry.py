"""Retry utilities for flaky blocking calls."""
import asyncio
from collections.abc import Callable
from logging import Logger


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__


async def with_retry[T](
    fn: Callable[[], T],
    *,
    name: str,
    logger: Logger,
    max_attempts: int = 3,
    delay_sec: float = 2.0,
    timeout_sec: float | None = None,
    retryable_exceptions: tuple[type[Exception], ...] = (OSError,),
) -> T:
    """Run a blocking function in a thread, retrying on failure.

    Args:
        fn: The blocking function to execute.
        name: Name for logging purposes.
        logger: Logger instance to use.
        max_attempts: Maximum number of attempts.
        delay_sec: Fixed delay between attempts. There is no delay after the
            last attempt.
        timeout_sec: Per-attempt timeout. An expired attempt raises
            TimeoutError, which is retried only if listed in
            retryable_exceptions. The thread itself cannot be interrupted
            and is abandoned.
        retryable_exceptions: Exception types that trigger a retry.

    Returns:
        The value returned by the first successful attempt.

    Raises:
        The last retryable exception once every attempt failed, or the first
        non-retryable exception immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            call = asyncio.to_thread(fn)
            if timeout_sec is not None:
                return await asyncio.wait_for(call, timeout=timeout_sec)
            return await call
        except retryable_exceptions as e:
            if attempt == max_attempts:
                logger.warning(
                    "%s attempt %d/%d failed: %s. Giving up",
                    name,
                    attempt,
                    max_attempts,
                    _describe(e),
                )
                raise
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.1fs...",
                name,
                attempt,
                max_attempts,
                _describe(e),
                delay_sec,
            )
            await asyncio.sleep(delay_sec)

    raise AssertionError("unreachable")
