"""
Bounded retry with exponential backoff for LLM calls.

Errors are classified by message signature:
- quota exhaustion: never retried
- rate limit / unavailability: retried with doubling delay
- anything else: raised immediately
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from core.constants import QUOTA_SIGNATURES, TRANSIENT_SIGNATURES
from core.exceptions import (
    GenerationError,
    QuotaExceededError,
    TransientServiceError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


def classify_error(error: Exception) -> Exception:
    """
    Map a raw transport error onto the generation error taxonomy.

    Already-classified errors are returned unchanged. The quota check
    runs first: a quota message may also carry a 429 status.
    """
    if isinstance(error, GenerationError):
        return error

    message = str(error).lower()
    status = getattr(error, 'status_code', None)
    if status is not None:
        message = f"{status} {message}"

    if any(sig in message for sig in QUOTA_SIGNATURES):
        return QuotaExceededError(str(error))
    if any(sig in message for sig in TRANSIENT_SIGNATURES):
        return TransientServiceError(str(error))
    return error


async def call_with_retry(
    call: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 2.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> T:
    """
    Invoke an async call, retrying transient failures.

    Args:
        call: Zero-argument coroutine factory
        max_attempts: Total number of attempts, including the first
        initial_delay: Delay before the first retry, doubled each time
        sleep: Awaitable sleep function

    Returns:
        The call's result

    Raises:
        QuotaExceededError: On quota exhaustion, without retrying
        TransientServiceError: When attempts are exhausted
        Exception: Any other error, unchanged
    """
    delay = initial_delay
    attempt = 1

    while True:
        try:
            return await call()
        except Exception as e:
            classified = classify_error(e)
            if isinstance(classified, TransientServiceError) and attempt < max_attempts:
                logger.warning(
                    "LLM call failed with retriable error, retrying in %.1fs (attempt %d/%d): %s",
                    delay, attempt, max_attempts, e
                )
                await sleep(delay)
                delay *= 2
                attempt += 1
                continue

            if classified is e:
                raise
            raise classified from e
