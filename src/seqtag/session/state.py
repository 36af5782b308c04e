"""Lifecycle phases of an inference sequence.

::

    UNSTARTED --start()--> ACTIVE --stop()--> STOPPED
        |                    |                   |
        +-------close()------+-------------------+--> CLOSED

``infer()`` is only legal while ``ACTIVE``. ``close()`` is legal from
every phase, including ``CLOSED`` itself.
"""

from __future__ import annotations

from enum import Enum

from seqtag.errors import IllegalStateError


class SequenceState(str, Enum):
    """Phase of a ``SequenceInferenceClient``."""

    UNSTARTED = "unstarted"
    ACTIVE = "active"
    STOPPED = "stopped"
    CLOSED = "closed"


# operation -> phases in which it may run
_ALLOWED: dict[str, frozenset[SequenceState]] = {
    "start": frozenset({SequenceState.UNSTARTED}),
    "infer": frozenset({SequenceState.ACTIVE}),
    "stop": frozenset({SequenceState.ACTIVE}),
    "close": frozenset(SequenceState),
}


def is_allowed(operation: str, state: SequenceState) -> bool:
    """True if ``operation`` may run while in ``state``."""
    try:
        return state in _ALLOWED[operation]
    except KeyError:
        raise ValueError(f"Unknown operation '{operation}'") from None


def require(operation: str, state: SequenceState, sequence_id: int) -> None:
    """Raise ``IllegalStateError`` unless ``operation`` is legal in ``state``."""
    if not is_allowed(operation, state):
        raise IllegalStateError(
            f"Cannot {operation}() sequence {sequence_id} while {state.value}"
        )
