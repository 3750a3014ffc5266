from __future__ import annotations

import asyncio
import random


def compute_backoff(
    attempt: int, base: float = 1.5, jitter: float = 0.5, cap: float | None = None
) -> float:
    """Compute exponential backoff with jitter, optionally capped."""
    delay = base ** attempt
    if cap is not None:
        delay = min(delay, cap)
    return delay + random.uniform(0, jitter)


async def wait_before_retry(
    attempt: int, base: float = 1.5, cap: float | None = None
) -> None:
    """Sleep for computed backoff delay before polling again."""
    await asyncio.sleep(compute_backoff(attempt, base=base, cap=cap))
