# Area: Shared
"""
maris_live.errors - Custom exception classes
============================================

Defines the exception hierarchy raised by the live game core.
Each exception keeps the context needed for structured logging.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional


class MarisLiveError(Exception):
    """Base exception for all maris_live errors."""
    pass


class InvalidReferenceError(MarisLiveError, ValueError):
    """Raised when a malformed point, user or game identifier is given."""

    def __init__(self, kind: str, value: Any):
        self.kind = kind
        self.value = value
        super().__init__(f"Invalid {kind} instance or ID: {value!r}")


class PersistenceError(MarisLiveError):
    """Raised by store adapters when a read or write fails."""

    def __init__(self, message: str, entity_id: Optional[str] = None,
                 field: Optional[str] = None):
        self.entity_id = entity_id
        self.field = field
        super().__init__(message)

    def to_log_dict(self) -> Dict[str, Any]:
        return {
            "error_type": "PERSISTENCE",
            "message": str(self),
            "entity_id": self.entity_id,
            "field": self.field,
        }


class OperationTimeoutError(MarisLiveError):
    """Raised when an I/O step feeding a join exceeds its deadline."""

    def __init__(self, operation: str, timeout_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Operation '{operation}' timed out after {timeout_seconds} seconds"
        )

    def to_log_dict(self) -> Dict[str, Any]:
        return {
            "error_type": "TIMEOUT",
            "message": str(self),
            "operation": self.operation,
            "timeout_seconds": self.timeout_seconds,
        }


class FanOutError(MarisLiveError):
    """Raised by a collect-all join when one or more operations failed."""

    def __init__(self, errors: List[BaseException]):
        self.errors = list(errors)
        summary = "; ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        super().__init__(f"{len(self.errors)} operation(s) failed: {summary}")
