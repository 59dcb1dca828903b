from __future__ import annotations

import itertools

import pytest

from liftout.modules.applications.models import APPLICATION_STATUSES
from liftout.modules.applications.state_machine import (
    TERMINAL_STATUSES,
    allowed_next,
    is_terminal,
    is_valid_transition,
)

ALLOWED = {
    ("submitted", "reviewing"),
    ("submitted", "rejected"),
    ("reviewing", "interviewing"),
    ("reviewing", "rejected"),
    ("interviewing", "accepted"),
    ("interviewing", "rejected"),
}


@pytest.mark.parametrize("current,requested", list(itertools.product(APPLICATION_STATUSES, repeat=2)))
def test_transition_table_is_total(current, requested):
    assert is_valid_transition(current, requested) is ((current, requested) in ALLOWED)


def test_same_status_is_never_a_transition():
    for s in APPLICATION_STATUSES:
        assert is_valid_transition(s, s) is False


def test_unknown_statuses_are_rejected():
    assert is_valid_transition("withdrawn", "reviewing") is False
    assert is_valid_transition("submitted", "withdrawn") is False
    assert is_valid_transition("", "") is False


def test_terminal_states_have_no_exits():
    assert TERMINAL_STATUSES == frozenset({"accepted", "rejected"})
    assert is_terminal("accepted") and is_terminal("rejected")
    assert not is_terminal("interviewing")
    assert allowed_next("accepted") == []


def test_allowed_next_is_in_lifecycle_order():
    assert allowed_next("submitted") == ["reviewing", "rejected"]
    assert allowed_next("interviewing") == ["accepted", "rejected"]
