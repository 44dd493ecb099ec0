# Area: Coord
"""
maris_live._coord.fanout - Structured fan-out / fan-in
======================================================

Coroutine combinators used by the live core instead of hand-written
counters and "called back" flags:

- guarded:    await one step with a deadline.
- join:       run a fixed set of steps; fail fast or collect all errors.
- first_true: stop at the first truthy result and cancel the rest.

The full set of operations is passed in upfront, so a join can never
complete before every step has been registered.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Iterable, List, Optional

from ..errors import FanOutError, OperationTimeoutError

logger = logging.getLogger("maris_live.coord.fanout")


class JoinPolicy(Enum):
    FAIL_FAST = "fail_fast"
    COLLECT_ALL = "collect_all"


async def guarded(aw: Awaitable[Any], timeout: Optional[float], label: str) -> Any:
    """
    Await ``aw`` with a deadline.

    Raises:
        OperationTimeoutError: If ``timeout`` seconds pass first
    """
    if timeout is None:
        return await aw
    try:
        return await asyncio.wait_for(aw, timeout)
    except asyncio.TimeoutError as e:
        logger.warning("Operation %s timed out after %ss", label, timeout)
        raise OperationTimeoutError(label, timeout) from e


async def _cancel_all(tasks: List["asyncio.Future[Any]"]) -> None:
    for task in tasks:
        if not task.done():
            task.cancel()
    # Discard whatever the cancelled tasks end with.
    await asyncio.gather(*tasks, return_exceptions=True)


async def join(
    aws: Iterable[Awaitable[Any]],
    policy: JoinPolicy = JoinPolicy.FAIL_FAST,
    timeout: Optional[float] = None,
    label: str = "join",
) -> List[Any]:
    """
    Run all awaitables concurrently and return their results in order.

    Args:
        aws: The complete set of operations
        policy: FAIL_FAST re-raises the first error and cancels the rest;
            COLLECT_ALL waits for everything and raises FanOutError
        timeout: Per-operation deadline in seconds
        label: Name used in timeout errors and logs

    Returns:
        List of results, same order as ``aws``
    """
    tasks = [
        asyncio.ensure_future(guarded(aw, timeout, f"{label}[{i}]"))
        for i, aw in enumerate(aws)
    ]
    if not tasks:
        return []

    if policy is JoinPolicy.FAIL_FAST:
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            await _cancel_all(tasks)
            raise

    try:
        results = await asyncio.gather(*tasks, return_exceptions=True)
    except asyncio.CancelledError:
        await _cancel_all(tasks)
        raise
    errors = [r for r in results if isinstance(r, BaseException)]
    if errors:
        raise FanOutError(errors)
    return list(results)


async def first_true(
    aws: Iterable[Awaitable[Any]],
    timeout: Optional[float] = None,
    label: str = "first_true",
) -> bool:
    """
    Return True as soon as any awaitable yields a truthy result.

    Remaining operations are cancelled and their results discarded.
    An error raised before any truthy result propagates.
    """
    tasks = [
        asyncio.ensure_future(guarded(aw, timeout, f"{label}[{i}]"))
        for i, aw in enumerate(aws)
    ]
    if not tasks:
        return False
    try:
        for next_done in asyncio.as_completed(tasks):
            if await next_done:
                return True
        return False
    finally:
        await _cancel_all(tasks)
