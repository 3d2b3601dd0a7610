"""Upstream text-generation capability.

The orchestrator only depends on :class:`TextGenerator`; concrete providers
are chosen from configuration by :func:`build_generator`.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from sitegen_bridge.config import Config
from sitegen_bridge.errors import UpstreamError
from sitegen_bridge.gemini_client import GeminiClient
from sitegen_bridge.ollama_client import OllamaClient


class TextGenerator(Protocol):
    """Anything that turns a system instruction and a user message into text."""

    async def generate(self, system_instruction: str, user_message: str) -> str:
        ...


def build_generator(config: Config) -> TextGenerator:
    """Instantiate the provider named by ``config.upstream.provider``."""
    if config.upstream.provider == "ollama":
        return OllamaClient.from_config(config.ollama, config.upstream)
    return GeminiClient.from_config(config.upstream)


async def generate_with_timeout(
    generator: TextGenerator,
    system_instruction: str,
    user_message: str,
    timeout: float | None = None,
) -> str:
    """Call *generator*, giving up after *timeout* seconds when one is set.

    Cancelling the awaiting task cancels the upstream call.

    Raises:
        UpstreamError: On provider failure or when the deadline passes.
    """
    call = generator.generate(system_instruction, user_message)
    if timeout is None:
        return await call
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise UpstreamError(f"Upstream generation timed out after {timeout}s.") from exc
