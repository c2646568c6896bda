"""Bounded exponential back-off around provider calls.

Adapters never retry on their own; every retry decision is made here.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from .provider_errors import ProviderError

T = TypeVar("T")

RETRYABLE_STATUSES = {408, 429, 500, 502, 503, 504}
NON_RETRYABLE_STATUSES = {400, 401, 403, 404, 405, 422}
TRANSIENT_MESSAGE_HINTS = ("network", "fetch", "timeout")
JITTER_SPAN = 0.25

RetryCallback = Callable[[int, int, BaseException], None]


class NonRetryableError(RuntimeError):
    """Raised when a failure was classified as not worth retrying."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class RetryExhaustedError(RuntimeError):
    """Raised when every allowed attempt failed."""

    def __init__(
        self, message: str, cause: Optional[BaseException] = None, attempts: int = 0
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.attempts = attempts


@dataclass(slots=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    on_retry: Optional[RetryCallback] = None


DEFAULT_RETRY_POLICY = RetryPolicy()


def _status_of(error: BaseException) -> Optional[int]:
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_retryable_error(error: BaseException) -> bool:
    if isinstance(error, ProviderError):
        return error.is_retryable()
    if isinstance(error, NonRetryableError):
        return False

    status = _status_of(error)
    if status in NON_RETRYABLE_STATUSES:
        return False
    if status in RETRYABLE_STATUSES:
        return True

    message = str(error).lower()
    if any(hint in message for hint in TRANSIENT_MESSAGE_HINTS):
        return True
    if isinstance(error, (TimeoutError, ConnectionError)):
        return True
    # unknown failures are retried rather than given up on
    return True


def compute_delay(attempt: int, policy: RetryPolicy, jitter: float) -> float:
    """Delay before retry ``attempt`` (1-based), ``jitter`` in [0, JITTER_SPAN)."""
    exponential = policy.base_delay * (2 ** (attempt - 1))
    return min(exponential * (1 + jitter), policy.max_delay)


def with_retry(
    operation: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
    rand: Callable[[], float] = random.random,
    logger: Optional[logging.Logger] = None,
) -> T:
    """Run ``operation``, retrying transient failures with back-off.

    Attempt 0 runs immediately. A non-retryable failure raises
    ``NonRetryableError`` at once; running out of retries raises
    ``RetryExhaustedError``. Both chain the underlying failure.
    """
    policy = policy or DEFAULT_RETRY_POLICY
    log = logger or logging.getLogger(__name__)
    max_retries = max(policy.max_retries, 0)

    for attempt in range(max_retries + 1):
        try:
            return operation()
        except Exception as exc:  # noqa: BLE001
            if not is_retryable_error(exc):
                log.warning("Giving up without retry: %r", exc)
                raise NonRetryableError(f"Non-retryable error: {exc}", exc) from exc
            if attempt >= max_retries:
                log.error("Operation failed after %s retries: %r", max_retries, exc)
                raise RetryExhaustedError(
                    f"Operation failed after {max_retries} retries: {exc}",
                    exc,
                    attempts=attempt + 1,
                ) from exc

            next_attempt = attempt + 1
            if policy.on_retry is not None:
                try:
                    policy.on_retry(next_attempt, max_retries, exc)
                except Exception as callback_exc:  # noqa: BLE001
                    log.debug("on_retry callback failed: %s", callback_exc)
            delay = compute_delay(next_attempt, policy, rand() * JITTER_SPAN)
            log.info(
                "Attempt %s/%s failed (%s); retrying in %.2fs",
                next_attempt,
                max_retries + 1,
                exc,
                delay,
            )
            sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover


__all__ = [
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "NonRetryableError",
    "RetryExhaustedError",
    "is_retryable_error",
    "compute_delay",
    "with_retry",
]
