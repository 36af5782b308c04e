"""Bounded concurrent fan-out with per-item failure isolation.

``fan_out`` runs an async callable over a batch of items and always returns
one ``ItemResult`` per item, in input order. A failing item records its
exception and never cancels the others.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ItemResult(Generic[T, R]):
    """Outcome for one item: either ``value`` or ``error`` is set."""

    item: T
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fan_out(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    max_concurrency: int = 8,
) -> list[ItemResult[T, R]]:
    """Apply ``func`` to every item with at most ``max_concurrency`` in flight.

    Args:
        items: Inputs to process.
        func: Coroutine function called once per item.
        max_concurrency: Upper bound on concurrently running calls.

    Returns:
        One ``ItemResult`` per input, in input order.

    Raises:
        ValueError: If ``max_concurrency`` is less than 1.
    """
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

    semaphore = asyncio.Semaphore(max_concurrency)

    async def _run(item: T) -> ItemResult[T, R]:
        async with semaphore:
            try:
                return ItemResult(item=item, value=await func(item))
            except Exception as exc:
                logger.warning("Item %r failed: %s", item, exc)
                return ItemResult(item=item, error=exc)

    batch = list(items)
    results = await asyncio.gather(*(_run(item) for item in batch))

    failed = sum(1 for r in results if not r.ok)
    logger.info("fan_out finished: %d items, %d failed", len(batch), failed)
    return list(results)
