"""sitegen-bridge configuration.

Typed configuration for both halves of the bridge: the orchestrator server
and the materializing client. All settings use Pydantic v2 models so they are
validated at construction time and can be serialised to/from JSON or read
from environment variables (a ``.env`` file is honoured).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Where the orchestrator listens. HTTP and WebSocket share one port."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)


class UpstreamConfig(BaseModel):
    """Settings for the hosted text-generation service (Gemini)."""

    provider: Literal["gemini", "ollama"] = Field(default="gemini")
    api_key: str = Field(default="", repr=False)
    base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    model: str = Field(default="gemini-1.5-pro-002")
    max_output_tokens: int = Field(default=8192, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.95, ge=0.0, le=1.0)
    top_k: int = Field(default=40, ge=1)
    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-request timeout in seconds. Unset means wait indefinitely.",
    )


class OllamaConfig(BaseModel):
    """Configuration for a local Ollama server used as the upstream provider."""

    url: str = Field(default="http://localhost:11434")
    model: str = Field(default="qwen2.5-coder:32b")


class ClientConfig(BaseModel):
    """Settings for the materializing client."""

    server_url: str = Field(default="ws://localhost:3000")
    workspace_root: Path | None = Field(default=None)


class Config(BaseModel):
    """Global sitegen-bridge configuration.

    Created once by a CLI entry point and passed to the server app or the
    client. Both sides read only the section they need.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        The API key is excluded so saved configs can be shared safely.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            self.model_dump_json(indent=2, exclude={"upstream": {"api_key"}}),
            encoding="utf-8",
        )
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> "Config":
        """Build a ``Config`` from environment variables.

        A ``.env`` file is loaded first (without overriding variables that
        are already set). Recognised variables (all optional):
            PORT, SITEGEN_HOST, GEMINI_API_KEY, SITEGEN_PROVIDER,
            SITEGEN_MODEL, SITEGEN_UPSTREAM_TIMEOUT, SITEGEN_OLLAMA_URL,
            SITEGEN_OLLAMA_MODEL, SITEGEN_SERVER_URL, SITEGEN_WORKSPACE.
        """
        load_dotenv(dotenv_path)

        server_kwargs: dict[str, Any] = {}
        if os.environ.get("PORT"):
            server_kwargs["port"] = int(os.environ["PORT"])
        if os.environ.get("SITEGEN_HOST"):
            server_kwargs["host"] = os.environ["SITEGEN_HOST"]

        upstream_kwargs: dict[str, Any] = {}
        if os.environ.get("GEMINI_API_KEY"):
            upstream_kwargs["api_key"] = os.environ["GEMINI_API_KEY"]
        if os.environ.get("SITEGEN_PROVIDER"):
            upstream_kwargs["provider"] = os.environ["SITEGEN_PROVIDER"]
        if os.environ.get("SITEGEN_MODEL"):
            upstream_kwargs["model"] = os.environ["SITEGEN_MODEL"]
        if os.environ.get("SITEGEN_UPSTREAM_TIMEOUT"):
            upstream_kwargs["timeout"] = float(os.environ["SITEGEN_UPSTREAM_TIMEOUT"])

        ollama_kwargs: dict[str, Any] = {}
        if os.environ.get("SITEGEN_OLLAMA_URL"):
            ollama_kwargs["url"] = os.environ["SITEGEN_OLLAMA_URL"]
        if os.environ.get("SITEGEN_OLLAMA_MODEL"):
            ollama_kwargs["model"] = os.environ["SITEGEN_OLLAMA_MODEL"]

        client_kwargs: dict[str, Any] = {}
        if os.environ.get("SITEGEN_SERVER_URL"):
            client_kwargs["server_url"] = os.environ["SITEGEN_SERVER_URL"]
        if os.environ.get("SITEGEN_WORKSPACE"):
            client_kwargs["workspace_root"] = Path(os.environ["SITEGEN_WORKSPACE"])

        return cls(
            server=ServerConfig(**server_kwargs),
            upstream=UpstreamConfig(**upstream_kwargs),
            ollama=OllamaConfig(**ollama_kwargs),
            client=ClientConfig(**client_kwargs),
        )
