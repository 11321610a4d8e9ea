"""
Location State Machine
======================
Allowed moves between ObjectLocation states.

LOCAL_ONLY is the initial state. The offload core only moves objects out
of LOCAL_ONLY; DUPLICATED -> REMOTE_ONLY belongs to the local-copy cleaner.
"""

from typing import Optional

from contracts.models import ObjectLocation

from ..exceptions import InvalidTransition

TRANSITIONS = {
    ObjectLocation.LOCAL_ONLY: frozenset({ObjectLocation.DUPLICATED, ObjectLocation.REMOTE_ONLY}),
    ObjectLocation.DUPLICATED: frozenset({ObjectLocation.REMOTE_ONLY}),
    ObjectLocation.REMOTE_ONLY: frozenset(),
}


def can_transition(from_state, to_state) -> bool:
    return ObjectLocation(to_state) in TRANSITIONS[ObjectLocation(from_state)]


def validate_transition(from_state, to_state) -> None:
    if not can_transition(from_state, to_state):
        raise InvalidTransition(
            f"Cannot move from {ObjectLocation(from_state).label} "
            f"to {ObjectLocation(to_state).label}"
        )


def resolve_target(local_readable: bool, remote_readable: bool) -> Optional[ObjectLocation]:
    """
    Location implied by what the stores can currently serve.

    Returns None when neither store can produce the bytes.
    """
    if remote_readable:
        return ObjectLocation.DUPLICATED if local_readable else ObjectLocation.REMOTE_ONLY
    if local_readable:
        return ObjectLocation.LOCAL_ONLY
    return None


def push_target(local_readable: bool) -> ObjectLocation:
    """Location of an object once its bytes are verified remotely."""
    return ObjectLocation.DUPLICATED if local_readable else ObjectLocation.REMOTE_ONLY
