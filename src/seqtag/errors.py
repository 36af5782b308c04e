"""Exception hierarchy for the sequence inference client.

Local failures (bad buffers, calls made in the wrong lifecycle phase) are
raised synchronously and never reach the network. Remote failures wrap the
original gRPC error together with a JSON dump of the request that failed.
"""

from __future__ import annotations


class SeqTagError(Exception):
    """Base class for every error raised by ``seqtag``."""


class RemoteCallError(SeqTagError):
    """A ``ModelInfer`` call did not complete successfully.

    Args:
        message: Human-readable description.
        cause: The underlying exception, if any.
        request: JSON serialisation of the request that failed.
    """

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        request: str = "",
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.request = request


class TransportError(RemoteCallError):
    """Network failure, remote rejection or protocol mismatch."""


class InferenceTimeoutError(RemoteCallError, TimeoutError):
    """The call exceeded its deadline.

    Kept apart from ``TransportError`` so callers can retry timeouts
    differently from hard failures.
    """


class InvalidLengthError(SeqTagError, ValueError):
    """A raw buffer does not fit the expected element width."""


class IllegalStateError(SeqTagError, RuntimeError):
    """An operation was called outside its legal lifecycle phase."""
