"""Bounded parallelism, transient retry, and status polling helpers.

AI-bound stages run in small batches with a fixed pause between batches
to stay within third-party rate limits.  Asynchronous platform checks go
through ``poll_until`` so every status loop has the same bounds.
"""

from __future__ import annotations

import logging
import socket
import time
import urllib.error
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Generic, TypeVar

from pressroom.errors import PollTimeout, TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_BATCH_SIZE = 3
DEFAULT_BATCH_DELAY = 2.0

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    TransientError,
    urllib.error.URLError,
    TimeoutError,
    socket.timeout,
    ConnectionError,
)


@dataclass
class BatchOutcome(Generic[T, R]):
    """Result of running one input through ``run_in_batches``."""

    item: T
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_in_batches(
    items: Iterable[T],
    fn: Callable[[T], R],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    delay: float = DEFAULT_BATCH_DELAY,
    label: str = "batch",
    sleep: Callable[[float], None] = time.sleep,
) -> list[BatchOutcome[T, R]]:
    """Apply ``fn`` to every item, at most ``batch_size`` at a time.

    A failure for one item is captured on its outcome and never aborts
    the rest.  Outcomes are returned in input order.
    """
    pending = list(items)
    outcomes: list[BatchOutcome[T, R]] = []
    size = max(1, batch_size)

    for start in range(0, len(pending), size):
        batch = pending[start : start + size]
        if start > 0 and delay > 0:
            sleep(delay)

        with ThreadPoolExecutor(max_workers=len(batch)) as pool:
            futures = [(item, pool.submit(fn, item)) for item in batch]
            for item, future in futures:
                try:
                    outcomes.append(BatchOutcome(item=item, value=future.result()))
                except Exception as exc:
                    logger.warning("%s failed for %r: %s", label, item, exc)
                    outcomes.append(BatchOutcome(item=item, error=exc))

    return outcomes


def retry_transient(
    fn: Callable[[], R],
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    label: str = "request",
    sleep: Callable[[float], None] = time.sleep,
) -> R:
    """Call ``fn``, retrying transient network failures with exponential backoff.

    Non-transient exceptions propagate immediately.  After the last attempt
    the final transient error propagates.
    """
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except TRANSIENT_ERRORS as exc:
            if attempt == attempts:
                raise
            wait = base_delay * (2 ** (attempt - 1))
            logger.info(
                "%s failed (%s), retrying in %.1fs [%d/%d]", label, exc, wait, attempt, attempts
            )
            sleep(wait)
    raise AssertionError("unreachable")


def poll_until(
    check: Callable[[], R | None],
    *,
    interval: float = 10.0,
    max_attempts: int = 30,
    label: str = "poll",
    sleep: Callable[[float], None] = time.sleep,
) -> R:
    """Call ``check`` until it returns a non-None value.

    ``check`` returns None while the remote operation is still pending and
    raises to signal a terminal error.

    Raises:
        PollTimeout: When ``max_attempts`` checks all came back pending.
    """
    for attempt in range(1, max_attempts + 1):
        result = check()
        if result is not None:
            logger.debug("%s ready after %d attempt(s)", label, attempt)
            return result
        if attempt < max_attempts:
            sleep(interval)
    raise PollTimeout(label, max_attempts)
