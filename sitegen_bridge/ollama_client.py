"""Async client for a local Ollama server.

An alternative upstream for offline use. Wraps ``/api/generate`` and
``/api/tags`` and raises :class:`~sitegen_bridge.errors.UpstreamError` on
failure, like :class:`~sitegen_bridge.gemini_client.GeminiClient`.
"""

from __future__ import annotations

import httpx

from sitegen_bridge.config import OllamaConfig, UpstreamConfig
from sitegen_bridge.errors import UpstreamError


class OllamaClient:
    """Async client for the Ollama REST API (default ``localhost:11434``)."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen2.5-coder:32b",
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_config(cls, ollama: OllamaConfig, upstream: UpstreamConfig) -> "OllamaClient":
        return cls(base_url=ollama.url, model=ollama.model, timeout=upstream.timeout)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
        )

    @staticmethod
    def _extract_text(data: dict) -> str:
        """Pull the generated text out of a /api/generate JSON response.

        Ollama's non-streaming response puts the full text in ``"response"``.
        """
        return data.get("response", "")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(self, system_instruction: str, user_message: str) -> str:
        """Generate text for *user_message* with *system_instruction* as system prompt.

        Raises:
            UpstreamError: On connection failure, timeout, or non-2xx status.
        """
        payload: dict = {
            "model": self.model,
            "prompt": user_message,
            "stream": False,
        }
        if system_instruction:
            payload["system"] = system_instruction

        try:
            async with self._client() as client:
                response = await client.post("/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.ConnectError as exc:
            raise UpstreamError(
                f"Cannot connect to Ollama at {self.base_url}. Is the server running?"
            ) from exc
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"Request to Ollama timed out after {self.timeout}s.") from exc
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                f"Ollama returned HTTP {exc.response.status_code}: {exc.response.text[:500]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Unexpected error during Ollama generate: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError(f"Ollama returned a body that is not JSON: {exc}") from exc

        return self._extract_text(data)

    async def is_available(self) -> bool:
        """Return ``True`` if the Ollama server responds to ``/api/tags``."""
        try:
            async with self._client() as client:
                response = await client.get("/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False
