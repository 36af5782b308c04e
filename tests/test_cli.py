"""Tests for seqtag.cli.main."""

from __future__ import annotations

import json
from unittest.mock import patch

from click.testing import CliRunner

from seqtag.cli.main import cli
from seqtag.errors import TransportError
from seqtag.grpc_.client import InferenceResult


class FakeClient:
    """Replaces SequenceInferenceClient inside the CLI."""

    instances: list["FakeClient"] = []

    def __init__(self, model_name, sequence_id, config=None):
        self.model_name = model_name
        self.sequence_id = sequence_id
        self.config = config
        self.calls: list[str] = []
        FakeClient.instances.append(self)

    async def start(self):
        self.calls.append("start")
        return f"Stream with sequence_id {self.sequence_id} started"

    async def infer(self, text):
        self.calls.append("infer")
        if text == "boom":
            raise TransportError("remote down")
        return InferenceResult(answer=text.upper(), confidence=0.5)

    async def stop(self):
        self.calls.append("stop")
        return f"Stream with sequence_id {self.sequence_id} stopped"

    async def close(self):
        self.calls.append("close")


def _json_lines(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


class TestRunCommand:
    """seqtag run -- start, fan out lines, stop, close."""

    def setup_method(self):
        FakeClient.instances = []

    def _invoke(self, args, stdin):
        runner = CliRunner()
        with patch("seqtag.grpc_.client.SequenceInferenceClient", FakeClient), \
             patch("seqtag.cli.main._setup_logging"):
            return runner.invoke(cli, ["run", *args, "--env-file", "missing.env"], input=stdin)

    def test_tags_each_line(self):
        result = self._invoke(["--sequence-id", "42"], "Hola\n\n  \nAdiós\n")
        assert result.exit_code == 0, result.output
        records = _json_lines(result.output)
        assert records == [
            {"line": "Hola", "answer": "HOLA", "confidence": 0.5},
            {"line": "Adiós", "answer": "ADIÓS", "confidence": 0.5},
        ]
        client = FakeClient.instances[0]
        assert client.sequence_id == 42
        assert client.calls == ["start", "infer", "infer", "stop", "close"]

    def test_failed_line_is_reported(self):
        result = self._invoke(["--sequence-id", "42"], "uno\nboom\ndos\n")
        assert result.exit_code == 0, result.output
        records = _json_lines(result.output)
        assert [r["line"] for r in records] == ["uno", "boom", "dos"]
        assert records[1] == {"line": "boom", "error": "remote down"}

    def test_overrides_reach_config(self):
        result = self._invoke(
            ["--sequence-id", "7", "--model", "other", "--host", "h", "--port", "8001"],
            "x\n",
        )
        assert result.exit_code == 0, result.output
        client = FakeClient.instances[0]
        assert client.model_name == "other"
        assert client.config.target == "h:8001"

    def test_invalid_sequence_id(self):
        result = self._invoke(["--sequence-id", "0"], "x\n")
        assert result.exit_code == 1
        assert FakeClient.instances == []


class TestNewIdCommand:
    def test_prints_int(self):
        result = CliRunner().invoke(cli, ["new-id"])
        assert result.exit_code == 0
        assert int(result.output.strip()) > 0
