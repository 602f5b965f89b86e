"""Bounded retry helper for network calls."""

import time
from typing import Callable, TypeVar

from hostspecializer.errors import SpecializationError

T = TypeVar("T")


def invoke_with_retries(
    action: Callable[[], T],
    max_retries: int,
    retry_interval: float,
    logger,
    label: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``action`` up to ``max_retries + 1`` times and re-raise the last failure."""
    max_attempts = max(1, max_retries + 1)

    for attempt in range(1, max_attempts + 1):
        try:
            return action()
        except Exception as exc:
            if attempt >= max_attempts:
                raise
            logger.warning(
                "%s failed on attempt %s/%s. Retrying in %.1fs: %s",
                label,
                attempt,
                max_attempts,
                retry_interval,
                exc,
            )
            sleep(retry_interval)

    raise SpecializationError(f"{label} failed after retries")
