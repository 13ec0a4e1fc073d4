"""
Batch-bounded fan-out and pacing helpers.

All fan-out in the engine goes through ``bounded_batches``: at most
``batch_size`` coroutines run together and the next batch starts only
after the whole current batch has resolved.
"""

import asyncio
import random
from typing import Awaitable, Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def bounded_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int = 1,
) -> List[R]:
    """
    Run ``worker`` over ``items`` in sequential batches of concurrent tasks.

    Args:
        items: Work items, dispatched in order
        worker: Coroutine function applied to each item
        batch_size: Maximum tasks in flight (values below 1 mean 1)

    Returns:
        Worker results in item order
    """
    size = max(1, int(batch_size or 1))
    pending = list(items)
    results: List[R] = []

    while pending:
        batch, pending = pending[:size], pending[size:]
        results.extend(await asyncio.gather(*(worker(item) for item in batch)))

    return results


async def random_delay(min_ms: float, max_ms: float) -> None:
    """Sleep a random duration between min_ms and max_ms milliseconds"""
    lower = max(0.0, float(min_ms or 0))
    upper = max(lower, float(max_ms or 0))
    duration = lower + random.random() * (upper - lower)
    if duration > 0:
        await asyncio.sleep(duration / 1000)
