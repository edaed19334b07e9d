"""Linear-backoff retries for calls to the translation API."""

import asyncio
import functools
import logging
from typing import Any, Callable, Optional

import openai

logger = logging.getLogger(__name__)

NETWORK_ERRORS = (ConnectionError, TimeoutError, asyncio.TimeoutError, OSError)


def calculate_linear_backoff_delay(base_delay: float, attempt: int) -> float:
    """
    Seconds to wait before retry number ``attempt`` (1-based).

    Examples:
        >>> calculate_linear_backoff_delay(1.0, 1)
        1.0
        >>> calculate_linear_backoff_delay(1.0, 3)
        3.0
    """
    return base_delay * max(attempt, 0)


def is_transient_error(error: Optional[BaseException]) -> bool:
    """
    Decide whether a failed call is worth repeating.

    Any ``openai.APIError`` (timeouts, dropped connections, rate limits and
    other non-2xx answers) and any network-level ``OSError`` is transient.
    Wrapped errors are judged by their ``__cause__``. Everything else, such
    as a ``TypeError`` from our own code, is permanent.

    Args:
        error: The raised exception

    Returns:
        True when a retry may succeed
    """
    if error is None:
        return False
    if isinstance(error, (openai.APIError, *NETWORK_ERRORS)):
        return True

    cause = error.__cause__
    return cause is not error and is_transient_error(cause)


def retry_with_linear_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Retry an async function on transient errors, waiting longer each time.

    Retry ``n`` sleeps ``base_delay * n`` seconds; the call is made at most
    ``max_retries + 1`` times. Permanent errors propagate immediately and the
    last transient error propagates once retries run out.

    Example:
        @retry_with_linear_backoff(max_retries=3, base_delay=1.0)
        async def request_translation():
            return await client.chat.completions.create(...)
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not is_transient_error(e):
                        logger.error(f"❌ {func.__name__} failed permanently: {e}")
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            f"❌ {func.__name__} still failing after "
                            f"{max_retries} retries: {e}"
                        )
                        raise

                    attempt += 1
                    delay = calculate_linear_backoff_delay(base_delay, attempt)
                    logger.warning(
                        f"⚠️  {func.__name__} hit a transient error ({e}), "
                        f"retry {attempt}/{max_retries} in {delay:.2f}s"
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
