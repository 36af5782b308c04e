"""Tensor codec for ``ModelInfer`` payloads.

Converts between the raw little-endian buffers found in
``raw_output_contents`` and typed numpy arrays, and between text and the
byte payloads carried by ``BYTES`` tensors. Every function here is pure and
safe to call from any thread.
"""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np

from seqtag.errors import InvalidLengthError

logger = logging.getLogger(__name__)

# Triton writes a uint32 length before each element of a BYTES output.
DEFAULT_TEXT_PREFIX_BYTES = 4

_INT32_LE = np.dtype("<i4")
_FLOAT32_LE = np.dtype("<f4")


def decode_int32_le(data: bytes) -> np.ndarray:
    """Decode a little-endian int32 buffer.

    Raises:
        InvalidLengthError: If ``len(data)`` is not a multiple of 4.
    """
    return _decode(data, _INT32_LE)


def decode_float32_le(data: bytes) -> np.ndarray:
    """Decode a little-endian IEEE-754 float32 buffer.

    Raises:
        InvalidLengthError: If ``len(data)`` is not a multiple of 4.
    """
    return _decode(data, _FLOAT32_LE)


def encode_int32_le(values: Iterable[int]) -> bytes:
    """Pack integers as little-endian int32."""
    return np.asarray(list(values), dtype=_INT32_LE).tobytes()


def encode_float32_le(values: Iterable[float]) -> bytes:
    """Pack floats as little-endian float32."""
    return np.asarray(list(values), dtype=_FLOAT32_LE).tobytes()


def text_to_bytes(text: str) -> bytes:
    """Encode ``text`` as one byte per character.

    This is not UTF-8: it only holds for Latin-1 text and is meant for the
    ASCII control commands (``START``/``STOP``) sent at sequence edges.

    Raises:
        ValueError: If ``text`` contains a character above U+00FF.
    """
    return text.encode("latin-1")


def bytes_to_text(data: bytes, offset: int = DEFAULT_TEXT_PREFIX_BYTES) -> str:
    """Decode a ``BYTES`` output element into text.

    The first ``offset`` bytes (the element length prefix) are skipped and
    the remainder is decoded as UTF-8.

    Raises:
        InvalidLengthError: If the buffer is shorter than ``offset``.
    """
    if offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")
    if len(data) < offset:
        raise InvalidLengthError(
            f"Text buffer of {len(data)} bytes is shorter than its "
            f"{offset}-byte prefix"
        )
    return bytes(data[offset:]).decode("utf-8")


def _decode(data: bytes, dtype: np.dtype) -> np.ndarray:
    if len(data) % dtype.itemsize != 0:
        raise InvalidLengthError(
            f"Buffer length {len(data)} is not a multiple of "
            f"{dtype.itemsize} ({dtype.name})"
        )
    # frombuffer returns a read-only view; copy so callers own the result
    arr = np.frombuffer(data, dtype=dtype).copy()
    logger.debug("decoded %d %s elements", arr.size, dtype.name)
    return arr
