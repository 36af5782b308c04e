"""Sequence id generation and validation.

The id travels as a signed 64-bit ``int64_param``; Triton treats ``0`` as
"no sequence". Python ints are unbounded, so nothing is lost in memory, but
values outside ``[1, 2**63 - 1]`` would not survive the wire and are
rejected up front.
"""

from __future__ import annotations

import secrets
import time

MIN_SEQUENCE_ID = 1
MAX_SEQUENCE_ID = 2**63 - 1


def generate_sequence_id() -> int:
    """Return a new sequence id: wall-clock microseconds plus 32 random bits.

    Current timestamps are around ``1.8e15``, far below ``MAX_SEQUENCE_ID``.
    """
    return validate_sequence_id(time.time_ns() // 1000 + secrets.randbits(32))


def validate_sequence_id(value: int) -> int:
    """Check that ``value`` can be sent as a sequence id and return it.

    Raises:
        TypeError: If ``value`` is not an ``int`` (``bool`` is rejected).
        ValueError: If ``value`` is outside ``[1, 2**63 - 1]``.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(
            f"sequence_id must be an int, got {type(value).__name__}"
        )
    if not MIN_SEQUENCE_ID <= value <= MAX_SEQUENCE_ID:
        raise ValueError(
            f"sequence_id {value} is outside "
            f"[{MIN_SEQUENCE_ID}, {MAX_SEQUENCE_ID}]"
        )
    return value
