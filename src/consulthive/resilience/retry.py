"""Resilient API call decorator with tenacity retry.

Retries transient failures with exponential backoff and jitter, logs each
retry, and logs the final failure before re-raising the last exception.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])


def resilient_api_call(
    api_name: str,
    *,
    attempts: int = 3,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[F], F]:
    """Create a retry decorator for an external API call.

    Returns a tenacity retry decorator configured with:
    - *attempts* attempts maximum (3 by default)
    - Exponential backoff with jitter (1s initial, 30s max, 5s jitter)
    - Warning log before each retry
    - Error log on final failure, after which the last exception is re-raised

    Args:
        api_name: Human-readable name for the API (used in logs).
        attempts: Total number of attempts, including the first call.
        retry_on: Exception types worth retrying; anything else propagates
            immediately.

    Returns:
        A decorator that wraps the function with retry logic.
    """

    def before_sleep(retry_state: RetryCallState) -> None:
        logger.warning(
            "Retrying API call",
            api_name=api_name,
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep if retry_state.next_action else 0,
        )

    def on_final_failure(retry_state: RetryCallState) -> Any:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.error(
            "API call failed after all retries",
            api_name=api_name,
            attempts=retry_state.attempt_number,
            exception=str(exception),
        )
        # Re-raises the last attempt's exception
        return retry_state.outcome.result() if retry_state.outcome else None

    def decorator(func: F) -> F:
        wrapped = retry(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential_jitter(initial=1, max=30, jitter=5),
            retry=retry_if_exception_type(retry_on),
            before_sleep=before_sleep,
            retry_error_callback=on_final_failure,
        )(func)
        return wrapped  # type: ignore[return-value]

    return decorator
