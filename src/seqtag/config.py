"""Configuration management for the sequence inference client.

Loads settings from environment variables and/or a ``.env`` file using
pydantic-settings (Pydantic v2). Every field has a default, so a bare
``ClientConfig()`` always constructs.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientConfig(BaseSettings):
    """Inference client configuration.

    Values are loaded in priority order:
      1. Explicit constructor arguments
      2. Environment variables (case-insensitive, e.g. ``TRITON_SERVER_HOST``)
      3. ``.env`` file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # ---- Remote server ----
    triton_server_host: str = Field(
        default="localhost",
        description="Inference server host name or address",
    )
    triton_server_port: int = Field(
        default=9001,
        ge=1,
        le=65535,
        description="Inference server gRPC port",
    )

    # ---- Model ----
    model_name: str = Field(
        default="sentence_tagger",
        description="Name of the remote sequence model",
    )

    # ---- Calls ----
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-call deadline in seconds",
    )
    max_message_length: int = Field(
        default=256 * 1024 * 1024,
        ge=1,
        description="gRPC send/receive message size limit in bytes",
    )
    text_prefix_bytes: int = Field(
        default=4,
        ge=0,
        description="Bytes skipped before decoding the text output as UTF-8",
    )

    # ---- Batch ----
    max_concurrency: int = Field(
        default=8,
        ge=1,
        description="Maximum in-flight items when fanning out a batch",
    )

    # ---- Validators ----

    @field_validator("triton_server_host")
    @classmethod
    def _normalize_host(cls, v: str) -> str:
        """Strip whitespace; an empty host falls back to ``localhost``."""
        v = v.strip()
        return v or "localhost"

    @property
    def target(self) -> str:
        """gRPC endpoint in ``"host:port"`` format."""
        return f"{self.triton_server_host}:{self.triton_server_port}"
