"""gRPC client layer and tensor codec for sequence inference."""

from seqtag.grpc_.client import InferenceResult, SequenceInferenceClient
from seqtag.grpc_.serializer import (
    bytes_to_text,
    decode_float32_le,
    decode_int32_le,
    encode_float32_le,
    encode_int32_le,
    text_to_bytes,
)

__all__ = [
    "InferenceResult",
    "SequenceInferenceClient",
    "bytes_to_text",
    "decode_float32_le",
    "decode_int32_le",
    "encode_float32_le",
    "encode_int32_le",
    "text_to_bytes",
]
