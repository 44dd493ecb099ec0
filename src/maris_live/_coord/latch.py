# Area: Coord
"""
maris_live._coord.latch - Counting completion latch
===================================================

Register N pending sub-operations, resolve them one by one, and run a
single completion callback once the count drops to zero.

The latch does not know about errors. Core code uses the structured
helpers in ``fanout`` instead; the latch stays for callers that drive
plain callbacks (e.g. push-channel acknowledgements).
"""

import logging
from typing import Callable, Optional

logger = logging.getLogger("maris_live.coord.latch")


class CallbackLatch:
    """
    Completion latch for callback-style fan-out.

    Usage:
        latch = CallbackLatch()
        for item in items:
            latch.add()
            start(item, on_done=latch.resolve)
        latch.then(finished)

    The completion callback fires at most once per wave. Extra
    ``resolve()`` calls clamp the count at zero and are ignored.
    """

    def __init__(self, count: int = 0):
        self._count = max(count, 0)
        self._callback: Optional[Callable[[], None]] = None
        self._fired = False

    @property
    def count(self) -> int:
        return self._count

    def identity(self) -> None:
        """Reset to an empty latch so it can drive a second wave."""
        self._count = 0
        self._callback = None
        self._fired = False

    def add(self, amount: int = 1) -> None:
        """Register ``amount`` more pending operations."""
        if amount < 0:
            raise ValueError("amount must be >= 0")
        self._count += amount
        if amount > 0:
            self._fired = False

    def resolve(self) -> None:
        """Mark one pending operation as done."""
        if self._count > 0:
            self._count -= 1
        else:
            logger.debug("resolve() called on an empty latch")
        if self._count == 0:
            self._fire()

    def then(self, callback: Callable[[], None]) -> None:
        """Register the completion callback; runs now if nothing is pending."""
        self._callback = callback
        if self._count == 0:
            self._fire()

    def _fire(self) -> None:
        if self._fired or self._callback is None:
            return
        self._fired = True
        self._callback()
