"""gRPC client that drives one stateful inference sequence.

``SequenceInferenceClient`` wraps a single ``grpc.aio`` channel to a
Triton-style ``GRPCInferenceService`` and keeps one sequence id alive
across many unary ``ModelInfer`` calls::

    async with SequenceInferenceClient("sentence_tagger", seq_id) as client:
        await client.start()
        result = await client.infer("Hola")
        await client.stop()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any

import grpc
from google.protobuf.json_format import MessageToJson
from grpc import aio as grpc_aio
from tritonclient.grpc import service_pb2, service_pb2_grpc

from seqtag.config import ClientConfig
from seqtag.errors import InferenceTimeoutError, RemoteCallError, TransportError
from seqtag.grpc_.serializer import bytes_to_text, decode_float32_le, text_to_bytes
from seqtag.session import state as lifecycle
from seqtag.session.ids import validate_sequence_id
from seqtag.session.state import SequenceState

logger = logging.getLogger(__name__)

INPUT_NAME = "text_in"
INPUT_DATATYPE = "BYTES"
INPUT_SHAPE = (1, 1)

# Order matters: raw_output_contents is matched to these by position.
OUTPUT_NAMES = ("text_out", "score")

START_COMMAND = "START"
STOP_COMMAND = "STOP"


@dataclass(frozen=True)
class InferenceResult:
    """Decoded answer for one ``infer()`` call."""

    answer: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SequenceInferenceClient:
    """Async client bound to one model and one sequence id.

    Args:
        model_name: Remote model every request targets.
        sequence_id: Id correlating the calls of this sequence on the server.
        config: Connection and call settings. Defaults to ``ClientConfig()``.
        channel: Pre-built channel to own instead of opening a new one.
        stub: Pre-built ``GRPCInferenceService`` stub. Built from ``channel``
            when omitted.

    Raises:
        TypeError, ValueError: If ``sequence_id`` is not a valid int64 id.
    """

    def __init__(
        self,
        model_name: str,
        sequence_id: int,
        config: ClientConfig | None = None,
        *,
        channel: grpc_aio.Channel | None = None,
        stub: Any | None = None,
    ) -> None:
        self._model_name = model_name
        self._sequence_id = validate_sequence_id(sequence_id)
        self.config = config or ClientConfig()

        if channel is None:
            options = [
                ("grpc.max_send_message_length", self.config.max_message_length),
                ("grpc.max_receive_message_length", self.config.max_message_length),
            ]
            channel = grpc_aio.insecure_channel(self.config.target, options=options)
            logger.info("SequenceInferenceClient insecure for target=%s", self.config.target)

        self.channel = channel
        self.stub = stub if stub is not None else service_pb2_grpc.GRPCInferenceServiceStub(channel)

        self._state = SequenceState.UNSTARTED
        self._channel_closed = False
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def sequence_id(self) -> int:
        return self._sequence_id

    @property
    def state(self) -> SequenceState:
        return self._state

    # ------------------------------------------------------------------
    # Sequence control
    # ------------------------------------------------------------------

    async def start(self) -> str:
        """Open the sequence on the server.

        Returns:
            Confirmation message naming the sequence id.

        Raises:
            IllegalStateError: If the sequence is not ``UNSTARTED``.
            TransportError: On gRPC failure. The state stays ``UNSTARTED``.
            InferenceTimeoutError: If the deadline expires.
        """
        return await self._send_control(is_start=True)

    async def stop(self) -> str:
        """End the sequence on the server.

        Raises:
            IllegalStateError: If the sequence is not ``ACTIVE``.
            TransportError: On gRPC failure. The state stays ``ACTIVE``.
            InferenceTimeoutError: If the deadline expires.
        """
        return await self._send_control(is_start=False)

    async def _send_control(self, is_start: bool) -> str:
        operation = "start" if is_start else "stop"
        command = START_COMMAND if is_start else STOP_COMMAND

        async with self._lock:
            lifecycle.require(operation, self._state, self._sequence_id)
            request = self._build_request(
                payload=text_to_bytes(command),
                outputs=(),
                sequence_start=is_start,
                sequence_end=not is_start,
            )
            await self._call(request, command)
            # close() may have run while the call was in flight
            if self._state is not SequenceState.CLOSED:
                self._state = SequenceState.ACTIVE if is_start else SequenceState.STOPPED

        action = "started" if is_start else "stopped"
        message = f"Stream with sequence_id {self._sequence_id} {action}"
        logger.info(message)
        return message

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    async def infer(self, text: str) -> InferenceResult:
        """Send one utterance to the running sequence.

        Concurrent callers are served one at a time in arrival order, so the
        server sees requests in the order they were issued.

        Raises:
            IllegalStateError: If the sequence is not ``ACTIVE``.
            TransportError: On gRPC failure or a malformed response. A gRPC
                failure also closes the channel.
            InferenceTimeoutError: If the deadline expires. The channel is
                closed as well.
            InvalidLengthError: If an output buffer cannot be decoded.
        """
        async with self._lock:
            lifecycle.require("infer", self._state, self._sequence_id)
            request = self._build_request(
                payload=text.encode("utf-8"),
                outputs=OUTPUT_NAMES,
                sequence_start=False,
                sequence_end=False,
            )
            try:
                response = await self._call(request, "INFER")
            except RemoteCallError:
                await self.close()
                raise

        return self._decode_response(response, request)

    def _decode_response(self, response: Any, request: Any) -> InferenceResult:
        raw = list(response.raw_output_contents)
        if len(raw) < len(OUTPUT_NAMES):
            raise TransportError(
                f"Expected {len(OUTPUT_NAMES)} raw outputs {list(OUTPUT_NAMES)}, "
                f"got {len(raw)}",
                request=MessageToJson(request),
            )

        try:
            answer = bytes_to_text(raw[0], offset=self.config.text_prefix_bytes)
        except UnicodeDecodeError as exc:
            raise TransportError(
                f"{OUTPUT_NAMES[0]} output is not valid UTF-8: {exc}",
                cause=exc,
                request=MessageToJson(request),
            ) from exc
        scores = decode_float32_le(raw[1])
        if scores.size == 0:
            raise TransportError(
                "Empty score output", request=MessageToJson(request),
            )
        return InferenceResult(answer=answer, confidence=float(scores[0]))

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    def _build_request(
        self,
        payload: bytes,
        outputs: tuple[str, ...],
        sequence_start: bool,
        sequence_end: bool,
    ) -> service_pb2.ModelInferRequest:
        request = service_pb2.ModelInferRequest(model_name=self._model_name)

        tensor = request.inputs.add()
        tensor.name = INPUT_NAME
        tensor.datatype = INPUT_DATATYPE
        tensor.shape.extend(INPUT_SHAPE)
        tensor.contents.bytes_contents.append(payload)

        for name in outputs:
            request.outputs.add().name = name

        request.parameters["sequence_id"].int64_param = self._sequence_id
        request.parameters["sequence_start"].bool_param = sequence_start
        request.parameters["sequence_end"].bool_param = sequence_end
        return request

    async def _call(self, request: Any, command: str) -> Any:
        logger.debug(
            "%s request for sequence %d to model %s",
            command,
            self._sequence_id,
            self._model_name,
        )
        try:
            return await self.stub.ModelInfer(
                request, timeout=self.config.request_timeout
            )
        except grpc.RpcError as exc:
            details = MessageToJson(request)
            logger.error("Error during %s request -> %s", command, exc)
            logger.error("Request Details -> %s", details)
            if _is_deadline(exc):
                raise InferenceTimeoutError(
                    f"{command} request timed out after "
                    f"{self.config.request_timeout}s",
                    cause=exc,
                    request=details,
                ) from exc
            raise TransportError(
                f"Error during {command} request -> {exc}",
                cause=exc,
                request=details,
            ) from exc

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release the channel. Safe to call any number of times."""
        self._state = SequenceState.CLOSED
        if self._channel_closed:
            return
        self._channel_closed = True
        try:
            await self.channel.close()
        except Exception as exc:
            logger.warning(
                "Ignoring error while closing channel for sequence %d: %s",
                self._sequence_id,
                exc,
            )
            return
        logger.info("SequenceInferenceClient channel to %s closed", self.config.target)

    async def __aenter__(self) -> SequenceInferenceClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()


def _is_deadline(exc: grpc.RpcError) -> bool:
    code = getattr(exc, "code", None)
    return callable(code) and code() == grpc.StatusCode.DEADLINE_EXCEEDED
