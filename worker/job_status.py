"""
Analysis status state machine (pure functions).

pending -> processing -> completed, with failed reachable from any
non-terminal state. A whole-job retry may re-enter processing from failed.
"""

from __future__ import annotations

PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"

STATUSES = (PENDING, PROCESSING, COMPLETED, FAILED)

ALLOWED_TRANSITIONS = {
    PENDING: frozenset({PROCESSING, FAILED}),
    PROCESSING: frozenset({PROCESSING, COMPLETED, FAILED}),
    # Retry re-entry: the job runs again from the top after being marked failed.
    FAILED: frozenset({PROCESSING, FAILED}),
    COMPLETED: frozenset(),
}

# Progress percentage persisted with each status.
STATUS_PROGRESS = {PENDING: 0, PROCESSING: 50, COMPLETED: 100}


class InvalidStatusTransition(ValueError):
    """Raised when a status change is not allowed by the state machine."""


def can_transition(current: str | None, target: str) -> bool:
    """
    Return True if current -> target is allowed.

    A missing current status is treated as pending.
    """
    if target not in STATUSES:
        return False
    return target in ALLOWED_TRANSITIONS.get(current or PENDING, frozenset())


def validate_transition(current: str | None, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidStatusTransition(f"Cannot move analysis from {current!r} to {target!r}")


def is_terminal(status: str) -> bool:
    return status in (COMPLETED, FAILED)
