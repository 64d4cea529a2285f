"""
Retry logic with exponential backoff for transient storage failures.

Only backend operations are retried (e.g. SQLite reporting a locked
database). A failed migration step is never retried; the executor stops
the chain instead.

Usage:
    from stowage.core.retry import retry_transient

    @retry_transient(max_attempts=5)
    async def _execute(self, sql, params):
        ...
"""

import inspect
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
)

from stowage.core.errors import TransientStorageError

log = structlog.get_logger()

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_WAIT_SECONDS = 0.05
DEFAULT_MAX_WAIT_SECONDS = 2.0
DEFAULT_EXPONENTIAL_MULTIPLIER = 2.0
DEFAULT_JITTER = True


F = TypeVar("F", bound=Callable[..., Any])


def _create_retry_callback(
    log_context: Optional[dict[str, Any]] = None,
) -> Callable[[RetryCallState], None]:
    context = log_context or {}

    def callback(state: RetryCallState) -> None:
        exception = state.outcome.exception() if state.outcome else None
        log.warning(
            "retry_attempt",
            attempt=state.attempt_number,
            error=str(exception) if exception else None,
            error_type=type(exception).__name__ if exception else None,
            wait_seconds=state.next_action.sleep if state.next_action else 0,
            **context,
        )

    return callback


def retry_transient(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    min_wait: float = DEFAULT_MIN_WAIT_SECONDS,
    max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
    multiplier: float = DEFAULT_EXPONENTIAL_MULTIPLIER,
    jitter: bool = DEFAULT_JITTER,
    log_context: Optional[dict[str, Any]] = None,
) -> Callable[[F], F]:
    """Decorator to retry a coroutine function on TransientStorageError with backoff.

    The last error is re-raised once attempts are exhausted. Since
    TransientStorageError is a StorageIOError, callers see an ordinary
    storage failure.

    Args:
        max_attempts: Maximum number of attempts (including initial).
        min_wait: Minimum wait time between retries in seconds.
        max_wait: Maximum wait time between retries in seconds.
        multiplier: Multiplier for exponential backoff.
        jitter: Whether to add randomness to wait times.
        log_context: Additional context for log messages.
    """

    def decorator(func: F) -> F:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"retry_transient needs a coroutine function, got {func!r}")
        callback = _create_retry_callback(log_context)

        if jitter:
            wait_strategy = wait_random_exponential(
                multiplier=multiplier, min=min_wait, max=max_wait
            )
        else:
            wait_strategy = wait_exponential(
                multiplier=multiplier, min=min_wait, max=max_wait
            )

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_strategy,
                retry=retry_if_exception_type(TransientStorageError),
                before_sleep=callback,
                reraise=True,
            ):
                with attempt:
                    return await func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator
