from typing import Any, Awaitable, Callable, Optional, TypeVar

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from winnerstays.config.settings import settings
from winnerstays.engine.errors import StorageError

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Store unavailable (attempt {retry_state.attempt_number}), retrying: {exc}"
    )


async def with_store_retry(
    operation: Callable[..., Awaitable[T]],
    *args: Any,
    attempts: Optional[int] = None,
    wait: Optional[wait_base] = None,
    **kwargs: Any,
) -> T:
    """Run a service operation, retrying it while the store is unavailable.

    Only StorageError is retried. Every service operation reloads the fixture
    before applying itself, so a retried call starts from whatever the store
    holds at that moment. Validation and state errors are raised at once.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts or settings.store_retry_attempts),
        wait=wait or wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type(StorageError),
        before_sleep=_log_retry,
        reraise=True,  # Reraise the StorageError after max attempts
    ):
        with attempt:
            return await operation(*args, **kwargs)
