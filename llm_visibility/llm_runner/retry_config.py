"""
Retry policy for LLM API calls.

The OpenAI client wraps its HTTP call in the tenacity decorator built here:
transient failures (rate limits, server errors, dropped connections,
timeouts) are retried with exponential backoff, everything else fails on
the first attempt.

Example:
    >>> @create_retry_decorator()
    ... async def post_completion():
    ...     ...
"""

import logging

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Total attempts = 1 initial + 2 retries
MAX_ATTEMPTS = 3

MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 60

# 429: Rate limit exceeded, 500-504: Server errors
RETRY_STATUS_CODES = frozenset([429, 500, 502, 503, 504])

# 400: Bad request, 401/403: Invalid or unauthorized key, 404: Unknown model
NO_RETRY_STATUS_CODES = frozenset([400, 401, 403, 404])

# HTTP request timeout in seconds, per attempt
REQUEST_TIMEOUT = 60.0


def is_transient_error(exc: BaseException) -> bool:
    """
    True for failures worth another attempt.

    Example:
        >>> request = httpx.Request("POST", "https://api.openai.com")
        >>> is_transient_error(httpx.ConnectError("refused", request=request))
        True
    """
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRY_STATUS_CODES
    return isinstance(exc, (httpx.ConnectError, httpx.TimeoutException))


def create_retry_decorator(
    max_attempts: int = MAX_ATTEMPTS,
    min_wait: float = MIN_WAIT_SECONDS,
    max_wait: float = MAX_WAIT_SECONDS,
):
    """
    Create a tenacity retry decorator for LLM API calls.

    Args:
        max_attempts: Attempts in total, the first one included
        min_wait: Lower bound of the exponential backoff, in seconds
        max_wait: Upper bound of the exponential backoff, in seconds

    Note:
        After the last attempt the original exception is re-raised, so
        callers see the httpx error and can translate it.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception(is_transient_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
