from __future__ import annotations

import asyncio
import random


def compute_backoff(
    attempt: int, factor: float = 1.0, base: float = 2.0, jitter: float = 0.0
) -> float:
    """Compute exponential backoff with jitter for the ``attempt``-th retry."""
    delay = factor * base ** max(attempt - 1, 0)
    return delay + random.uniform(0, jitter)


async def schedule_retry(attempt: int, factor: float = 1.0) -> None:
    """Sleep for computed backoff delay before retrying."""
    delay = compute_backoff(attempt, factor=factor)
    await asyncio.sleep(delay)
