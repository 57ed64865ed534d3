"""Unanimous-approval rule shared by documents and change requests.

A round is approved only when every decider approved it; a single rejection
(or request for changes) decides the round no matter what else is pending.
There is no quorum mode.
"""

import enum
from collections.abc import Iterable


class AggregateOutcome(enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


_APPROVED = "approved"
_REJECTED = frozenset({"rejected", "changes_requested"})


def _status_value(item) -> str:
    status = getattr(item, "status", item)
    return getattr(status, "value", status)


def aggregate(approvals: Iterable) -> AggregateOutcome:
    """Accepts approval rows or bare statuses (enum members or strings)."""
    statuses = [_status_value(item) for item in approvals]
    if any(status in _REJECTED for status in statuses):
        return AggregateOutcome.rejected
    if statuses and all(status == _APPROVED for status in statuses):
        return AggregateOutcome.approved
    return AggregateOutcome.pending
