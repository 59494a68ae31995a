"""Publication job statuses and allowed transitions."""

from __future__ import annotations

from typing import Dict, FrozenSet


JOB_STATUS_PENDING = "pending"
JOB_STATUS_SCHEDULED = "scheduled"
JOB_STATUS_PROCESSING = "processing"
JOB_STATUS_COMPLETED = "completed"
JOB_STATUS_FAILED = "failed"
JOB_STATUS_CANCELLED = "cancelled"

JOB_STATUSES = (
    JOB_STATUS_PENDING,
    JOB_STATUS_SCHEDULED,
    JOB_STATUS_PROCESSING,
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
    JOB_STATUS_CANCELLED,
)

TERMINAL_JOB_STATUSES: FrozenSet[str] = frozenset(
    {
        JOB_STATUS_COMPLETED,
        JOB_STATUS_FAILED,
        JOB_STATUS_CANCELLED,
    }
)

_ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    JOB_STATUS_PENDING: frozenset({JOB_STATUS_PROCESSING, JOB_STATUS_PENDING, JOB_STATUS_FAILED, JOB_STATUS_CANCELLED}),
    JOB_STATUS_SCHEDULED: frozenset({JOB_STATUS_PROCESSING, JOB_STATUS_PENDING, JOB_STATUS_FAILED, JOB_STATUS_CANCELLED}),
    JOB_STATUS_PROCESSING: frozenset({JOB_STATUS_COMPLETED, JOB_STATUS_PENDING, JOB_STATUS_FAILED, JOB_STATUS_CANCELLED}),
}


class InvalidJobTransitionError(ValueError):
    """Raised when a job status change is not allowed from its current status."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"invalid publication job transition: {current} -> {target}")
        self.current = current
        self.target = target


def is_terminal_status(status: str | None) -> bool:
    return status in TERMINAL_JOB_STATUSES


def can_transition(current: str, target: str) -> bool:
    return target in _ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidJobTransitionError(current, target)
