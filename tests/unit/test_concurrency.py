"""
Unit tests for batch-bounded fan-out
"""

import asyncio
import pytest
from unittest.mock import patch, AsyncMock
from ingestion.concurrency import bounded_batches, random_delay


@pytest.mark.asyncio
async def test_batches_never_exceed_size_and_run_sequentially():
    in_flight = 0
    peak = 0

    async def worker(item):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        in_flight -= 1
        return item * 2

    results = await bounded_batches([1, 2, 3, 4, 5], worker, batch_size=2)

    assert results == [2, 4, 6, 8, 10]
    assert peak == 2


@pytest.mark.asyncio
async def test_batch_size_below_one_means_sequential():
    order = []

    async def worker(item):
        order.append(item)
        return item

    await bounded_batches(["a", "b"], worker, batch_size=0)

    assert order == ["a", "b"]


@pytest.mark.asyncio
async def test_random_delay_zero_does_not_sleep():
    with patch("ingestion.concurrency.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        await random_delay(0, 0)

    mock_sleep.assert_not_called()


@pytest.mark.asyncio
async def test_random_delay_within_bounds():
    with patch("ingestion.concurrency.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        await random_delay(100, 200)

    seconds = mock_sleep.await_args.args[0]
    assert 0.1 <= seconds <= 0.2
