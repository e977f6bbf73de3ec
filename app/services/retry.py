"""Retry with exponential backoff for provider calls."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from app.errors import GenerationError

logger = logging.getLogger("voice_clone")

T = TypeVar("T")


def with_retry(
    operation: Callable[[], T],
    max_attempts: int = 3,
    initial_delay_ms: int = 1000,
    *,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> T:
    """Run ``operation`` up to ``max_attempts`` times.

    Waits ``initial_delay_ms * 2**attempt`` between attempts. A GenerationError whose kind is
    not retryable is raised at once; otherwise the last error is re-raised unchanged after the
    final attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 0
    while True:
        try:
            return operation()
        except Exception as e:
            if isinstance(e, GenerationError) and not e.retryable:
                logger.error("%s failed with non-retryable %s: %s", label, e.kind.value, e.message)
                raise
            logger.warning("%s attempt %d/%d failed: %s", label, attempt + 1, max_attempts, e)
            if attempt >= max_attempts - 1:
                raise

        delay_ms = initial_delay_ms * (2**attempt)
        logger.info("Retrying %s in %dms", label, delay_ms)
        sleep(delay_ms / 1000)
        attempt += 1


@dataclass
class RetryPolicy:
    """Retry settings handed to the orchestrator."""

    max_attempts: int = 3
    initial_delay_ms: int = 1000
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def run(self, operation: Callable[[], T], *, label: str = "operation") -> T:
        return with_retry(
            operation,
            self.max_attempts,
            self.initial_delay_ms,
            sleep=self.sleep,
            label=label,
        )
