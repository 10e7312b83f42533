"""Bounded concurrency fetching with timeout and retry/backoff."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger("price_search.pool")

T = TypeVar("T")
R = TypeVar("R")


async def call_with_retry(
    fn: Callable[[], Awaitable[Optional[R]]],
    *,
    timeout: float | None,
    max_retries: int = 0,
    base_delay: float = 0.5,
    label: str = "request",
) -> Optional[R]:
    """Await ``fn`` with a timeout, retrying failures with exponential backoff.

    A timeout, an exception or a ``None`` result counts as a failed attempt.
    Once ``max_retries`` extra attempts are spent the call resolves to
    ``None``; per-item failures never escape.
    """
    attempts = max(0, max_retries) + 1
    for attempt in range(attempts):
        try:
            result = await asyncio.wait_for(fn(), timeout=timeout)
            if result is not None:
                return result
            logger.debug("%s returned no data (attempt %d/%d)", label, attempt + 1, attempts)
        except asyncio.TimeoutError:
            logger.warning("%s timed out after %ss (attempt %d/%d)", label, timeout, attempt + 1, attempts)
        except Exception as exc:
            logger.warning("%s failed (attempt %d/%d): %s", label, attempt + 1, attempts, exc)

        if attempt + 1 < attempts:
            await asyncio.sleep(base_delay * (2**attempt))

    logger.info("%s gave up after %d attempt(s)", label, attempts)
    return None


async def run_pool(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[Optional[R]]],
    concurrency: int,
    *,
    timeout: float | None = None,
    max_retries: int = 0,
    base_delay: float = 0.5,
    on_result: Callable[[R], None] | None = None,
) -> List[R]:
    """Run ``worker`` over ``items`` with at most ``concurrency`` in flight.

    Workers share a cursor and each pulls the next unclaimed item, so slow
    items do not hold back a statically assigned partition. Failed items are
    dropped; results keep the order of ``items``.
    """
    if not items:
        return []

    results: List[Optional[R]] = [None] * len(items)
    cursor = 0

    async def drain() -> None:
        nonlocal cursor
        while cursor < len(items):
            index = cursor
            cursor += 1
            item = items[index]
            result = await call_with_retry(
                lambda: worker(item),
                timeout=timeout,
                max_retries=max_retries,
                base_delay=base_delay,
                label=f"item {index}",
            )
            if result is None:
                continue
            results[index] = result
            if on_result is not None:
                on_result(result)

    pool_size = min(max(1, concurrency), len(items))
    await asyncio.gather(*(drain() for _ in range(pool_size)))
    return [result for result in results if result is not None]
