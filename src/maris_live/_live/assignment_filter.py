# Area: Live
"""
maris_live._live.assignment_filter - Assignment state filter
============================================================

Selects assignments by the approval state of a user's submissions:

- open:     the user has no submission for the assignment
- pending:  any submission is PENDING
- accepted: any submission is APPROVED
- rejected: any submission is REJECTED
- approved: any submission carries an approval state other than NONE

A filter with every flag set, or none set, selects everything and is
normalised to ``None``.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from .._shared.models import ApprovalState, SubmissionRecord


class AssignmentFilter(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    open: bool = False
    pending: bool = False
    approved: bool = False
    accepted: bool = False
    rejected: bool = False

    @classmethod
    def coerce(cls, value: Any) -> Optional["AssignmentFilter"]:
        """
        Build a normalised filter from None, a dict or a filter.

        Returns:
            The filter, or None if it would select everything
        """
        if value is None:
            return None
        flt = value if isinstance(value, cls) else cls(**value)
        flags = flt.model_dump().values()
        if all(flags) or not any(flags):
            return None
        return flt

    def matches(self, submissions: Iterable[SubmissionRecord]) -> bool:
        """Check the submissions of one user for one assignment."""
        states = [s.approval_state for s in submissions]
        if self.open and not states:
            return True
        if self.pending and ApprovalState.PENDING in states:
            return True
        if self.accepted and ApprovalState.APPROVED in states:
            return True
        if self.rejected and ApprovalState.REJECTED in states:
            return True
        if self.approved and any(s is not None and s != ApprovalState.NONE for s in states):
            return True
        return False


OPEN_FILTER = AssignmentFilter(open=True)

# Assignments that keep a point visible to a user.
ACTIVE_FILTER = AssignmentFilter(open=True, pending=True)
