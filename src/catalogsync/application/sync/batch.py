"""
Batch Execution Controller - chunking, bounded concurrency and retry with
exponential backoff for requests against the platform.

A request is any zero-argument callable returning an awaitable, so a request
can be re-issued on retry:

    >>> executor = BatchExecutor()
    >>> results = await executor.execute_chunks(
    ...     chunk([lambda d=d: client.create(d) for d in drafts], 30)
    ... )

Two failure policies live side by side in this package and are kept apart on
purpose: ``execute_chunks`` here is fail-fast, while the deferred store's
cleanup and the sync orchestrator isolate and count per-item failures.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from catalogsync.core.exceptions import PlatformError, RetryExhaustedError, ServerError
from catalogsync.core.ports.config_provider import BatchConfig, RetryConfig


T = TypeVar("T")

Request = Callable[[], Awaitable[T]]
SleepFunction = Callable[[float], Awaitable[None]]


def chunk(items: Iterable[T], size: int) -> list[list[T]]:
    """
    Split items into consecutive chunks of ``size``.

    Input order is preserved and only the last chunk may be smaller.

    >>> chunk(range(1, 11), 3)
    [[1, 2, 3], [4, 5, 6], [7, 8, 9], [10]]

    Raises:
        ValueError: If size is smaller than 1
    """
    if size < 1:
        raise ValueError(f"Chunk size must be at least 1, got {size}")

    chunks: list[list[T]] = []
    current: list[T] = []
    for item in items:
        current.append(item)
        if len(current) == size:
            chunks.append(current)
            current = []
    if current:
        chunks.append(current)
    return chunks


def calculate_retry_delay(
    attempt: int,
    initial_delay: float,
    timeout: float,
    rng: random.Random | None = None,
) -> float:
    """
    Exponential backoff with jitter, capped at ``timeout``.

    delay = min(initial_delay * 2 ** (attempt - 1) * jitter, timeout)
    with jitter drawn uniformly from [1, 2).

    Args:
        attempt: 1-based retry attempt number
        initial_delay: Delay before the first retry, in seconds
        timeout: Upper bound for any single delay, in seconds
        rng: Random source (for deterministic tests)

    Returns:
        Delay in seconds
    """
    jitter = 1.0 + (rng or random).random()
    exponent = max(attempt - 1, 0)
    try:
        delay = initial_delay * (2**exponent) * jitter
    except OverflowError:
        return timeout
    return min(delay, timeout)


@dataclass(frozen=True)
class RetryContext:
    """State of one failed request that is about to be retried."""

    attempt: int
    delay: float


class RetryPolicy:
    """
    Retries requests that fail with a retryable platform status.

    Only PlatformError with a status in ``retryable_status_codes`` is
    retried; anything else propagates immediately. Version conflicts (409)
    are never retried here; re-fetching and re-diffing is the caller's call.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        sleep: SleepFunction | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or RetryConfig()
        self._sleep = sleep or asyncio.sleep
        self._rng = rng
        self.logger = logging.getLogger("RetryPolicy")

    def is_retryable(self, error: BaseException) -> bool:
        # A ServerError without status is a connection failure or timeout.
        if isinstance(error, ServerError) and error.status_code is None:
            return True
        return (
            isinstance(error, PlatformError)
            and error.status_code in self.config.retryable_status_codes
        )

    def next_context(self, attempt: int) -> RetryContext:
        delay = calculate_retry_delay(
            attempt, self.config.initial_delay, self.config.timeout, self._rng
        )
        return RetryContext(attempt=attempt, delay=delay)

    async def execute(self, request: Request[T], *, description: str = "request") -> T:
        """
        Run a request, retrying retryable failures.

        Raises:
            RetryExhaustedError: After ``max_retries`` retries all failed
            Exception: Any non-retryable error, unchanged
        """
        attempt = 0
        while True:
            try:
                return await request()
            except Exception as e:
                if not self.is_retryable(e):
                    raise
                attempt += 1
                if attempt > self.config.max_retries:
                    raise RetryExhaustedError(
                        f"Failed to execute {description} after {attempt} attempt(s)",
                        attempts=attempt,
                        cause=e,
                    ) from e

                context = self.next_context(attempt)
                self.logger.warning(
                    f"Retryable error on {description}: {e}. "
                    f"Retry {context.attempt}/{self.config.max_retries} "
                    f"in {context.delay:.2f}s"
                )
                await self._sleep(context.delay)


class BatchExecutor:
    """
    Dispatches requests with a cap on how many are in flight at once.

    The cap is shared by every call made through one executor instance.
    Requests beyond the cap wait on an asyncio.Semaphore, whose waiters are
    woken in FIFO order. The slot is released while a retry sleeps.
    """

    def __init__(
        self,
        config: BatchConfig | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.config = config or BatchConfig()
        if self.config.max_parallel_requests < 1:
            raise ValueError("max_parallel_requests must be at least 1")
        self.retry_policy = retry_policy or RetryPolicy()
        self._semaphore = asyncio.Semaphore(self.config.max_parallel_requests)
        self._in_flight = 0
        self._peak_in_flight = 0
        self.logger = logging.getLogger("BatchExecutor")

    @property
    def in_flight(self) -> int:
        """Number of requests currently executing."""
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of simultaneously executing requests seen so far."""
        return self._peak_in_flight

    async def _run_limited(self, request: Request[T]) -> T:
        async with self._semaphore:
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                return await request()
            finally:
                self._in_flight -= 1

    async def submit(self, request: Request[T], *, description: str = "request") -> T:
        """Run one request under the concurrency cap, with retries."""
        return await self.retry_policy.execute(
            lambda: self._run_limited(request), description=description
        )

    async def execute_chunk(self, requests: Sequence[Request[T]]) -> list[T]:
        """
        Run the members of one chunk concurrently and collect their results.

        Fail-fast: the first failure cancels the remaining members and is
        re-raised. Results are returned in request order.
        """
        if not requests:
            return []

        tasks = [asyncio.ensure_future(self.submit(request)) for request in requests]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def execute_chunks(self, chunks: Iterable[Sequence[Request[T]]]) -> list[T]:
        """
        Run chunks one after another, members of each chunk concurrently.

        Returns:
            All results, flattened, in request order

        Raises:
            The first error raised by any request; later chunks are not started
        """
        results: list[T] = []
        for index, requests in enumerate(chunks):
            self.logger.debug(f"Executing chunk {index + 1} ({len(requests)} request(s))")
            results.extend(await self.execute_chunk(requests))
        return results
