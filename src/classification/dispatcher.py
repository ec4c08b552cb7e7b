# src/classification/dispatcher.py - v1
"""Bounded, paced dispatch of classification work.

Items are cut into fixed slices of ``width``. Within a slice every item
starts after ``stagger_delay_s * position`` and all run concurrently; the
next slice starts only once the whole slice has settled, after
``slice_delay_s``. Cancellation is honoured between slices: in-flight
calls finish, no new slice is dispatched.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from iconnormalizer.core.models import Item

logger = logging.getLogger(__name__)

R = TypeVar("R")
Sleep = Callable[[float], Awaitable[Any]]


def make_slices(items: Sequence[Item], width: int) -> list[list[Item]]:
    if width < 1:
        raise ValueError(f"Window width must be >= 1, got {width}")
    return [list(items[i:i + width]) for i in range(0, len(items), width)]


async def _staggered(
    worker: Callable[[Item], Awaitable[R]],
    item: Item,
    delay_s: float,
    sleep: Sleep,
) -> R:
    if delay_s > 0:
        await sleep(delay_s)
    return await worker(item)


async def dispatch_windowed(
    items: Sequence[Item],
    worker: Callable[[Item], Awaitable[R]],
    *,
    width: int = 3,
    slice_delay_s: float = 0.5,
    stagger_delay_s: float = 0.2,
    cancel_event: asyncio.Event | None = None,
    sleep: Sleep = asyncio.sleep,
) -> dict[str, R]:
    """Run ``worker`` over ``items`` slice by slice.

    ``worker`` is expected to contain per-item failures. Anything it raises
    is treated as fatal: the rest of the slice settles, then the first such
    exception is re-raised and no further slice is dispatched.

    Returns:
        Results keyed by item id, for every item that was dispatched.
    """
    results: dict[str, R] = {}
    slices = make_slices(items, width)

    for index, batch in enumerate(slices):
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(
                "Cancellation requested, %d of %d slices not dispatched",
                len(slices) - index, len(slices),
            )
            break

        logger.info(
            "Dispatching slice %d/%d (%d items)", index + 1, len(slices), len(batch),
        )
        outcomes = await asyncio.gather(
            *(
                _staggered(worker, item, position * stagger_delay_s, sleep)
                for position, item in enumerate(batch)
            ),
            return_exceptions=True,
        )

        fatal: BaseException | None = None
        for item, outcome in zip(batch, outcomes):
            if isinstance(outcome, BaseException):
                fatal = fatal or outcome
            else:
                results[item.id] = outcome
        if fatal is not None:
            raise fatal

        if index < len(slices) - 1 and slice_delay_s > 0:
            await sleep(slice_delay_s)

    return results
