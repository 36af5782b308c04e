"""Shared fixtures for seqtag tests.

Provides an in-memory transport (fake channel and stub), response builders
and a client factory so individual test modules can stay focused on their
own assertions.
"""

from __future__ import annotations

import os
import struct
from unittest.mock import patch

import grpc
import pytest
from tritonclient.grpc import service_pb2

from seqtag.grpc_.serializer import encode_float32_le


# ---------------------------------------------------------------------------
# Transport doubles
# ---------------------------------------------------------------------------

class FakeChannel:
    """Stand-in for ``grpc.aio.Channel`` that counts ``close()`` calls."""

    def __init__(self, close_error: Exception | None = None) -> None:
        self.close_calls = 0
        self._close_error = close_error

    async def close(self) -> None:
        self.close_calls += 1
        if self._close_error is not None:
            raise self._close_error


class FakeStub:
    """Stand-in for ``GRPCInferenceServiceStub``.

    Each ``ModelInfer`` call pops the next scripted outcome: a response
    message, an exception to raise, or a callable taking the request.
    Once the script is exhausted an empty response is returned.
    """

    def __init__(self, outcomes: list | None = None) -> None:
        self.requests: list = []
        self.timeouts: list = []
        self._outcomes = list(outcomes or [])

    def script(self, *outcomes) -> None:
        self._outcomes.extend(outcomes)

    async def ModelInfer(self, request, timeout=None):
        self.requests.append(request)
        self.timeouts.append(timeout)
        outcome = self._outcomes.pop(0) if self._outcomes else service_pb2.ModelInferResponse()
        if callable(outcome):
            outcome = outcome(request)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def rpc_error(code: grpc.StatusCode = grpc.StatusCode.UNAVAILABLE, details: str = "unavailable"):
    """Build the error ``grpc.aio`` raises for a failed unary call."""
    return grpc.aio.AioRpcError(
        code, grpc.aio.Metadata(), grpc.aio.Metadata(), details=details,
    )


def make_response(answer: str, confidence: float):
    """``ModelInferResponse`` shaped like the sentence tagger's output."""
    encoded = answer.encode("utf-8")
    return service_pb2.ModelInferResponse(
        raw_output_contents=[
            struct.pack("<I", len(encoded)) + encoded,
            encode_float32_le([confidence]),
        ],
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def config():
    """ClientConfig with explicit test values."""
    with patch.dict(os.environ, {}, clear=False):
        from seqtag.config import ClientConfig

        return ClientConfig(
            triton_server_host="127.0.0.1",
            triton_server_port=9001,
            model_name="sentence_tagger",
            request_timeout=5.0,
            text_prefix_bytes=4,
            max_concurrency=4,
        )


@pytest.fixture()
def fake_channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture()
def fake_stub() -> FakeStub:
    return FakeStub()


@pytest.fixture()
def make_client(config, fake_channel, fake_stub):
    """Factory building a client wired to the fake transport."""
    from seqtag.grpc_.client import SequenceInferenceClient

    def _make(sequence_id: int = 1_700_000_000_123_456, **kwargs):
        kwargs.setdefault("channel", fake_channel)
        kwargs.setdefault("stub", fake_stub)
        return SequenceInferenceClient(
            "sentence_tagger", sequence_id, kwargs.pop("config", config), **kwargs
        )

    return _make
