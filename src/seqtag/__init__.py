"""seqtag -- stateful sequence inference client for Triton-style gRPC servers."""

from seqtag.config import ClientConfig
from seqtag.errors import (
    IllegalStateError,
    InferenceTimeoutError,
    InvalidLengthError,
    RemoteCallError,
    SeqTagError,
    TransportError,
)
from seqtag.grpc_.client import InferenceResult, SequenceInferenceClient
from seqtag.session import SequenceState, generate_sequence_id

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "IllegalStateError",
    "InferenceResult",
    "InferenceTimeoutError",
    "InvalidLengthError",
    "RemoteCallError",
    "SeqTagError",
    "SequenceInferenceClient",
    "SequenceState",
    "TransportError",
    "generate_sequence_id",
]
