"""
Unit tests for the analysis status state machine.
"""

from __future__ import annotations

import pytest

from worker.job_status import (
    COMPLETED,
    FAILED,
    PENDING,
    PROCESSING,
    InvalidStatusTransition,
    can_transition,
    is_terminal,
    validate_transition,
)


@pytest.mark.parametrize(
    "current,target",
    [
        (PENDING, PROCESSING),
        (PROCESSING, COMPLETED),
        (PENDING, FAILED),
        (PROCESSING, FAILED),
        (PROCESSING, PROCESSING),
        (FAILED, PROCESSING),
        (None, PROCESSING),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    validate_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (PENDING, COMPLETED),
        (COMPLETED, PROCESSING),
        (COMPLETED, FAILED),
        (PROCESSING, PENDING),
        (PENDING, "archived"),
    ],
)
def test_rejected_transitions(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidStatusTransition):
        validate_transition(current, target)


def test_terminal_states():
    assert is_terminal(COMPLETED)
    assert is_terminal(FAILED)
    assert not is_terminal(PENDING)
    assert not is_terminal(PROCESSING)
