"""Async client for the Google Generative Language (Gemini) REST API.

Wraps ``models/{model}:generateContent`` with timeout handling and maps every
transport or API failure onto :class:`~sitegen_bridge.errors.UpstreamError`.

Typical usage::

    client = GeminiClient(api_key=os.environ["GEMINI_API_KEY"])
    text = await client.generate(system_instruction, user_message)
"""

from __future__ import annotations

from typing import Any

import httpx

from sitegen_bridge.config import UpstreamConfig
from sitegen_bridge.errors import UpstreamError


class GeminiClient:
    """Async client for the Gemini ``generateContent`` endpoint.

    A fresh ``httpx.AsyncClient`` is opened per call; the orchestrator makes
    at most one call per prompt so there is nothing to pool.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-pro-002",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float | None = None,
        generation_config: dict[str, Any] | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.generation_config = generation_config or {
            "maxOutputTokens": 8192,
            "temperature": 0.7,
            "topP": 0.95,
            "topK": 40,
        }

    @classmethod
    def from_config(cls, config: UpstreamConfig) -> "GeminiClient":
        return cls(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            timeout=config.timeout,
            generation_config={
                "maxOutputTokens": config.max_output_tokens,
                "temperature": config.temperature,
                "topP": config.top_p,
                "topK": config.top_k,
            },
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers={"x-goog-api-key": self.api_key},
        )

    def _payload(self, system_instruction: str, user_message: str) -> dict[str, Any]:
        return {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"role": "user", "parts": [{"text": user_message}]}],
            "generationConfig": self.generation_config,
        }

    @staticmethod
    def _extract_text(data: dict) -> str:
        """Concatenate the text parts of the first candidate.

        Raises:
            UpstreamError: If the prompt was blocked or no candidate came back.
        """
        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise UpstreamError(f"Gemini blocked the prompt: {block_reason}")

        candidates = data.get("candidates") or []
        if not candidates:
            raise UpstreamError("Gemini returned no candidates.")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    @staticmethod
    def _describe_status_error(exc: httpx.HTTPStatusError) -> str:
        status = exc.response.status_code
        try:
            detail = exc.response.json().get("error", {}).get("message", "")
        except ValueError:
            detail = ""
        detail = detail or exc.response.text[:500]
        if status in (401, 403):
            return f"Gemini rejected the API key (HTTP {status}): {detail}"
        if status == 429:
            return f"Gemini quota exceeded (HTTP 429): {detail}"
        return f"Gemini returned HTTP {status}: {detail}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(self, system_instruction: str, user_message: str) -> str:
        """Generate a reply for *user_message* under *system_instruction*.

        Returns:
            The generated text.

        Raises:
            UpstreamError: On missing credentials, connection failure,
                timeout, non-2xx status, blocked prompt, or malformed body.
        """
        if not self.api_key:
            raise UpstreamError("GEMINI_API_KEY is not set.")

        path = f"/models/{self.model}:generateContent"
        try:
            async with self._client() as client:
                response = await client.post(
                    path, json=self._payload(system_instruction, user_message)
                )
                response.raise_for_status()
                data = response.json()
        except httpx.ConnectError as exc:
            raise UpstreamError(f"Cannot connect to Gemini at {self.base_url}: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"Request to Gemini timed out after {self.timeout}s.") from exc
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(self._describe_status_error(exc)) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Unexpected error during Gemini generate: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError(f"Gemini returned a body that is not JSON: {exc}") from exc

        return self._extract_text(data)
