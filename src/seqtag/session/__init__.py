"""Sequence lifecycle and identity."""

from seqtag.session.ids import generate_sequence_id, validate_sequence_id
from seqtag.session.state import SequenceState

__all__ = [
    "SequenceState",
    "generate_sequence_id",
    "validate_sequence_id",
]
