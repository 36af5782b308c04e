"""CLI entry point for seqtag.

Provides the ``seqtag`` command with subcommands:

- ``run``    -- run a conversation (one utterance per line) through a
                single inference sequence and print JSON results.
- ``new-id`` -- print a freshly generated sequence id.

Server address and model default to ``ClientConfig`` (environment and
``.env``); flags override them.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING, TextIO

import click
from dotenv import load_dotenv

if TYPE_CHECKING:
    from seqtag.config import ClientConfig


@click.group()
@click.version_option(package_name="seqtag-client")
def cli() -> None:
    """seqtag -- stateful sequence inference over gRPC."""


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--model", default=None, help="Remote model name (default: sentence_tagger).")
@click.option("--host", default=None, help="Inference server host.")
@click.option("--port", type=int, default=None, help="Inference server gRPC port (default: 9001).")
@click.option("--timeout", type=float, default=None, help="Per-call deadline in seconds.")
@click.option("--concurrency", type=int, default=None, help="Maximum in-flight lines.")
@click.option("--sequence-id", type=int, default=None, help="Reuse a sequence id instead of generating one.")
@click.option("--env-file", default=".env", show_default=True, help="Path to .env file.")
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG logging.")
def run(
    source: TextIO,
    model: str | None,
    host: str | None,
    port: int | None,
    timeout: float | None,
    concurrency: int | None,
    sequence_id: int | None,
    env_file: str,
    verbose: bool,
) -> None:
    """Tag every non-blank line of SOURCE (default: stdin).

    \b
    Example:
        seqtag run conversation.txt --host 10.0.0.5 --port 9001
        cat conversation.txt | seqtag run --model sentence_tagger
    """
    _setup_logging(verbose)
    load_dotenv(env_file, override=False)

    overrides: dict[str, object] = {}
    if model is not None:
        overrides["model_name"] = model
    if host is not None:
        overrides["triton_server_host"] = host
    if port is not None:
        overrides["triton_server_port"] = port
    if timeout is not None:
        overrides["request_timeout"] = timeout
    if concurrency is not None:
        overrides["max_concurrency"] = concurrency

    from seqtag.config import ClientConfig
    from seqtag.session.ids import generate_sequence_id, validate_sequence_id

    try:
        config = ClientConfig(**overrides)
        seq_id = (
            generate_sequence_id()
            if sequence_id is None
            else validate_sequence_id(sequence_id)
        )
    except Exception as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)

    lines = [line.strip() for line in source if line.strip()]
    exit_code = asyncio.run(_run_conversation(config, seq_id, lines))
    sys.exit(exit_code)


async def _run_conversation(config: ClientConfig, sequence_id: int, lines: list[str]) -> int:
    """Start a sequence, tag ``lines``, stop. Returns the process exit code."""
    from seqtag.errors import SeqTagError
    from seqtag.grpc_.client import SequenceInferenceClient
    from seqtag.pipeline.batch import fan_out

    client = SequenceInferenceClient(config.model_name, sequence_id, config)
    try:
        try:
            click.echo(await client.start(), err=True)
        except SeqTagError as exc:
            click.echo(f"Cannot start sequence: {exc}", err=True)
            return 1

        results = await fan_out(lines, client.infer, config.max_concurrency)
        for r in results:
            record: dict[str, object] = {"line": r.item}
            if r.ok:
                record.update(r.value.to_dict())
            else:
                record["error"] = str(r.error)
            click.echo(json.dumps(record, ensure_ascii=False))

        try:
            click.echo(await client.stop(), err=True)
        except SeqTagError as exc:
            click.echo(f"Cannot stop sequence: {exc}", err=True)
        return 0
    finally:
        await client.close()


# ---------------------------------------------------------------------------
# new-id
# ---------------------------------------------------------------------------


@cli.command("new-id")
def new_id() -> None:
    """Print a new sequence id."""
    from seqtag.session.ids import generate_sequence_id

    click.echo(generate_sequence_id())


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    """Configure root and package loggers."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    # Suppress noisy third-party loggers
    for name in ("grpc", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Package entry point (``seqtag`` console script)."""
    cli()


if __name__ == "__main__":
    main()
