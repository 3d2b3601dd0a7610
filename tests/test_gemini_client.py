"""Unit tests for GeminiClient (sitegen_bridge.gemini_client).

Tests cover:
- GeminiClient.__init__ / from_config
- GeminiClient.generate (success, payload shape, missing key, connect error,
  timeout, HTTP errors, unexpected error, non-JSON body)
- Static helpers: _extract_text, _describe_status_error
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from sitegen_bridge.config import UpstreamConfig
from sitegen_bridge.errors import UpstreamError
from sitegen_bridge.gemini_client import GeminiClient

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta"


def _reply(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def _status_error(status: int, body: dict | None = None, text: str = "") -> httpx.HTTPStatusError:
    request = httpx.Request("POST", f"{GEMINI_URL}/models/m:generateContent")
    if body is not None:
        response = httpx.Response(status, json=body, request=request)
    else:
        response = httpx.Response(status, text=text, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestGeminiClientInit:
    @pytest.mark.unit
    def test_defaults(self):
        client = GeminiClient(api_key="k")
        assert client.model == "gemini-1.5-pro-002"
        assert client.base_url == GEMINI_URL
        assert client.timeout is None
        assert client.generation_config == {
            "maxOutputTokens": 8192,
            "temperature": 0.7,
            "topP": 0.95,
            "topK": 40,
        }

    @pytest.mark.unit
    def test_trailing_slash_stripped(self):
        client = GeminiClient(api_key="k", base_url="http://proxy:9000/v1beta/")
        assert client.base_url == "http://proxy:9000/v1beta"

    @pytest.mark.unit
    def test_from_config(self):
        config = UpstreamConfig(api_key="abc", model="gemini-x", temperature=0.2, top_k=8, timeout=30)
        client = GeminiClient.from_config(config)
        assert client.api_key == "abc"
        assert client.model == "gemini-x"
        assert client.timeout == 30
        assert client.generation_config["temperature"] == 0.2
        assert client.generation_config["topK"] == 8


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerate:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_generate(self, http_client_factory):
        mock_client = http_client_factory(json_body=_reply("```file:index.html\n<p/>\n```"))

        with patch("httpx.AsyncClient", return_value=mock_client):
            client = GeminiClient(api_key="k")
            text = await client.generate("be helpful", "make a page")

        assert text == "```file:index.html\n<p/>\n```"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_payload_shape(self, http_client_factory):
        mock_client = http_client_factory(json_body=_reply("ok"))

        with patch("httpx.AsyncClient", return_value=mock_client):
            client = GeminiClient(api_key="k", model="gemini-test")
            await client.generate("SYSTEM", "USER")

        call_args = mock_client.post.call_args
        assert call_args[0][0] == "/models/gemini-test:generateContent"
        payload = call_args[1]["json"]
        assert payload["systemInstruction"] == {"parts": [{"text": "SYSTEM"}]}
        assert payload["contents"] == [{"role": "user", "parts": [{"text": "USER"}]}]
        assert payload["generationConfig"]["maxOutputTokens"] == 8192

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_api_key_sent_as_header(self, http_client_factory):
        mock_client = http_client_factory(json_body=_reply("ok"))

        with patch("httpx.AsyncClient", return_value=mock_client) as mock_cls:
            await GeminiClient(api_key="secret-key").generate("s", "u")

        assert mock_cls.call_args[1]["headers"] == {"x-goog-api-key": "secret-key"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        with patch("httpx.AsyncClient") as mock_cls:
            with pytest.raises(UpstreamError, match="GEMINI_API_KEY"):
                await GeminiClient(api_key="").generate("s", "u")
        mock_cls.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_error(self, http_client_factory):
        mock_client = http_client_factory(side_effect=httpx.ConnectError("Connection refused"))

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(UpstreamError, match="Cannot connect to Gemini"):
                await GeminiClient(api_key="k").generate("s", "u")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout(self, http_client_factory):
        mock_client = http_client_factory(side_effect=httpx.ReadTimeout("timed out"))

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(UpstreamError, match="timed out after 5.0s"):
                await GeminiClient(api_key="k", timeout=5.0).generate("s", "u")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_quota_error(self, http_client_factory):
        error = _status_error(429, {"error": {"message": "Resource exhausted"}})
        mock_client = http_client_factory(side_effect=error)

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(UpstreamError) as exc_info:
                await GeminiClient(api_key="k").generate("s", "u")

        assert str(exc_info.value) == "Gemini quota exceeded (HTTP 429): Resource exhausted"
        assert exc_info.value.kind == "UpstreamError"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_error(self, http_client_factory):
        mock_client = http_client_factory(side_effect=httpx.RemoteProtocolError("peer closed"))

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(UpstreamError, match="Unexpected error during Gemini generate"):
                await GeminiClient(api_key="k").generate("s", "u")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_body_not_json(self):
        mock_response = MagicMock()
        mock_response.json.side_effect = ValueError("Expecting value")
        mock_response.raise_for_status = MagicMock()

        mock_client = AsyncMock()
        mock_client.post = AsyncMock(return_value=mock_response)
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(UpstreamError, match="not JSON"):
                await GeminiClient(api_key="k").generate("s", "u")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_blocked_prompt(self, http_client_factory):
        mock_client = http_client_factory(json_body={"promptFeedback": {"blockReason": "SAFETY"}})

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(UpstreamError, match="blocked the prompt: SAFETY"):
                await GeminiClient(api_key="k").generate("s", "u")


# ---------------------------------------------------------------------------
# Static helpers
# ---------------------------------------------------------------------------


class TestExtractText:
    @pytest.mark.unit
    def test_joins_parts(self):
        data = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}, {}]}}]}
        assert GeminiClient._extract_text(data) == "ab"

    @pytest.mark.unit
    def test_first_candidate_only(self):
        data = {"candidates": [
            {"content": {"parts": [{"text": "first"}]}},
            {"content": {"parts": [{"text": "second"}]}},
        ]}
        assert GeminiClient._extract_text(data) == "first"

    @pytest.mark.unit
    def test_no_candidates(self):
        with pytest.raises(UpstreamError, match="no candidates"):
            GeminiClient._extract_text({})

    @pytest.mark.unit
    def test_candidate_without_content(self):
        assert GeminiClient._extract_text({"candidates": [{"finishReason": "MAX_TOKENS"}]}) == ""


class TestDescribeStatusError:
    @pytest.mark.unit
    @pytest.mark.parametrize("status", [401, 403])
    def test_auth(self, status):
        message = GeminiClient._describe_status_error(
            _status_error(status, {"error": {"message": "API key not valid"}})
        )
        assert message == f"Gemini rejected the API key (HTTP {status}): API key not valid"

    @pytest.mark.unit
    def test_plain_text_body(self):
        message = GeminiClient._describe_status_error(_status_error(503, text="upstream overloaded"))
        assert message == "Gemini returned HTTP 503: upstream overloaded"
