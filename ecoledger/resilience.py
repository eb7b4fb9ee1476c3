"""Retry with exponential backoff for multi-statement store operations."""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

from ecoledger.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _sanitize_error_for_logging(error: Exception) -> str:
    """Describe an error without leaking SQL, paths or connection strings."""
    error_type = type(error).__name__
    safe_messages = {
        "OperationalError": "Database operational error",
        "InterfaceError": "Database connection failed",
        "TimeoutError": "Operation timed out",
        "OSError": "System I/O error",
    }
    return safe_messages.get(error_type, f"Error of type {error_type}")


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Retries after the first attempt
        base_delay: Base delay between retries in seconds
        max_delay: Upper bound on a single delay in seconds
        exponential_base: Backoff multiplier per attempt
        jitter: Whether to randomise each delay
        retryable_exceptions: Exception types treated as transient
    """

    max_retries: int = 3
    base_delay: float = 0.1
    max_delay: float = 5.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (
            OperationalError,
            InterfaceError,
            TimeoutError,
            OSError,
        )
    )

    def calculate_delay(self, attempt: int) -> float:
        """Delay in seconds before retry number ``attempt`` (0-indexed)."""
        delay = min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay,
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())
        return delay


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    name: str | None = None,
) -> T:
    """
    Run ``operation`` until it succeeds or retries are exhausted.

    The operation must be safe to repeat as a whole: each attempt should
    open its own transaction so a failed attempt leaves nothing behind.
    """
    config = config or RetryConfig()
    name = name or getattr(operation, "__name__", "operation")

    for attempt in range(config.max_retries + 1):
        try:
            return await operation()
        except config.retryable_exceptions as e:
            if attempt >= config.max_retries:
                logger.error(
                    "retry_exhausted",
                    operation=name,
                    max_retries=config.max_retries,
                    error_type=type(e).__name__,
                    error_msg=_sanitize_error_for_logging(e),
                )
                raise
            delay = config.calculate_delay(attempt)
            logger.warning(
                "retry_attempt",
                operation=name,
                attempt=attempt + 1,
                max_retries=config.max_retries,
                delay=round(delay, 3),
                error_type=type(e).__name__,
                error_msg=_sanitize_error_for_logging(e),
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Unexpected state: no result and no exception")
