from __future__ import annotations

from typing import Mapping

from .models import APPLICATION_STATUSES


# Terminal states (accepted, rejected) have no outgoing edges.
VALID_TRANSITIONS: Mapping[str, frozenset[str]] = {
    "submitted": frozenset({"reviewing", "rejected"}),
    "reviewing": frozenset({"interviewing", "rejected"}),
    "interviewing": frozenset({"accepted", "rejected"}),
    "accepted": frozenset(),
    "rejected": frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in VALID_TRANSITIONS.items() if not nxt)


def is_valid_transition(current: str, requested: str) -> bool:
    """
    Canonical application transition check.

    Defined for every pair of strings: unknown statuses and same-status
    "transitions" are simply not valid.
    """
    return requested in VALID_TRANSITIONS.get(current, frozenset())


def allowed_next(current: str) -> list[str]:
    nxt = VALID_TRANSITIONS.get(current, frozenset())
    return [s for s in APPLICATION_STATUSES if s in nxt]


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES
