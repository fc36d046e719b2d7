"""Service for executing API calls with automatic retries.

Implements exponential backoff for transient errors: rate limits (429),
server errors (5xx) and failures that carry no status code at all (network
errors, timeouts). Any other 4xx is fatal and surfaces immediately.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from notiontpl.domain.events.api_events import (
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    DomainEvent,
    RetryScheduled,
)
from notiontpl.domain.models.common import BackoffPolicy

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_INITIAL_BACKOFF_S = 0.5
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_MAX_BACKOFF_S = 5.0

RATE_LIMITED_STATUS = 429


def get_status_code(error: BaseException) -> Optional[int]:
    """Returns the HTTP status attached to an error, if any.

    ``notion_client.APIResponseError`` exposes ``status``; other HTTP
    libraries use ``status_code``.
    """
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def is_retryable(error: BaseException) -> bool:
    """Classifies an error as transient (retry) or fatal (surface now)."""
    status = get_status_code(error)
    if status is None:
        return True
    return status >= 500 or status == RATE_LIMITED_STATUS


class ApiRetryService:
    """Handles API call execution with retries and exponential backoff."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_backoff_s: float = DEFAULT_INITIAL_BACKOFF_S,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        max_backoff_s: float = DEFAULT_MAX_BACKOFF_S,
        event_listener: Optional[Callable[[DomainEvent], None]] = None,
    ):
        """Initializes the ApiRetryService.

        Args:
            max_attempts: Total number of attempts, including the first call.
            initial_backoff_s: Delay in seconds before the first retry.
            backoff_factor: Multiplier applied to the delay after each retry.
            max_backoff_s: Upper bound for the delay.
            event_listener: Optional callable receiving domain events.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self.max_backoff_s = max_backoff_s
        self.event_listener = event_listener

        logger.info(
            f"ApiRetryService initialized: max_attempts={max_attempts}, "
            f"initial_backoff={initial_backoff_s}s, factor={backoff_factor}, cap={max_backoff_s}s"
        )

    @classmethod
    def from_policy(cls, policy: BackoffPolicy, **kwargs: Any) -> "ApiRetryService":
        return cls(
            max_attempts=policy["max_attempts"],
            initial_backoff_s=policy["initial_delay"],
            backoff_factor=policy["factor"],
            max_backoff_s=policy["max_delay"],
            **kwargs,
        )

    def dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self.event_listener:
            self.event_listener(event)

    async def execute(
        self,
        operation: Callable[[], Awaitable[Any]],
        endpoint_name: Optional[str] = None,
    ) -> Any:
        """Executes an async operation, retrying transient failures.

        Args:
            operation: Zero-argument callable returning an awaitable (the API call).
            endpoint_name: Label used in logs and events.

        Returns:
            The operation's result from the first successful attempt.

        Raises:
            Exception: The fatal error, or the last transient error once
                ``max_attempts`` attempts have failed.
        """
        endpoint = endpoint_name or getattr(operation, "__name__", "notion-call")
        current_backoff = self.initial_backoff_s
        attempt = 0

        while True:
            attempt += 1
            self.dispatch_event(ApiCallInitiated(endpoint=endpoint, attempt_number=attempt))
            start_time = time.perf_counter()
            try:
                result = await operation()
            except Exception as e:
                status = get_status_code(e)
                if not is_retryable(e):
                    logger.error(f"Non-retryable error calling {endpoint} (status={status}): {e}")
                    self.dispatch_event(ApiCallFailed(
                        endpoint=endpoint, error_type=type(e).__name__,
                        error_message=str(e), status=status, attempts=attempt,
                    ))
                    raise
                if attempt >= self.max_attempts:
                    logger.error(f"Max attempts ({self.max_attempts}) reached for {endpoint}. Last error: {e}")
                    self.dispatch_event(ApiCallFailed(
                        endpoint=endpoint, error_type=type(e).__name__,
                        error_message=str(e), status=status, attempts=attempt,
                    ))
                    raise
                logger.warning(
                    f"Retryable error calling {endpoint} on attempt {attempt}/{self.max_attempts}: "
                    f"{type(e).__name__} (status={status}). Waiting {current_backoff:.2f}s..."
                )
                self.dispatch_event(RetryScheduled(
                    endpoint=endpoint, attempt_number=attempt,
                    delay_seconds=current_backoff, status=status,
                ))
                await asyncio.sleep(current_backoff)
                current_backoff = min(current_backoff * self.backoff_factor, self.max_backoff_s)
                continue

            latency_ms = (time.perf_counter() - start_time) * 1000
            self.dispatch_event(ApiCallSucceeded(endpoint=endpoint, latency_ms=latency_ms, attempt_number=attempt))
            return result
