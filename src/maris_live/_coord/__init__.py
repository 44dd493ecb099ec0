"""Join primitives: the counting latch and structured fan-out helpers."""

from .fanout import JoinPolicy, first_true, guarded, join
from .latch import CallbackLatch

__all__ = ["CallbackLatch", "JoinPolicy", "first_true", "guarded", "join"]
