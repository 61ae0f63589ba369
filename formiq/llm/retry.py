# formiq/llm/retry.py
"""Retry logic for model provider calls with exponential backoff."""

import logging

import httpx
import openai
from ollama import ResponseError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Transient HTTP statuses worth another attempt
RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def is_retryable(exception: BaseException) -> bool:
    """
    Returns True if the exception should be retried.

    Retryable conditions:
    - ConnectionError / httpx transport errors (server unavailable)
    - openai.APIConnectionError (includes APITimeoutError)
    - openai.APIStatusError or ollama.ResponseError with a transient status
    """
    if isinstance(exception, (ConnectionError, httpx.TransportError)):
        return True

    if isinstance(exception, openai.APIConnectionError):
        return True

    if isinstance(exception, openai.APIStatusError):
        return exception.status_code in RETRYABLE_STATUSES

    if isinstance(exception, ResponseError):
        return exception.status_code in RETRYABLE_STATUSES

    return False


# Tenacity retry decorator for provider API calls
llm_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception(is_retryable),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
