"""Tests for the Gemini LLM client.

Covers: structured JSON output with Pydantic validation and fence
stripping, provider availability, retry with exponential backoff over a
mock HTTP transport, and image payload decoding.
"""

import json

import httpx
import pytest
from pydantic import BaseModel

from nexus_learn.agents.errors import MalformedResponse, UpstreamFailure
from nexus_learn.agents.llm_client import (
    LLMClient,
    LLMProvider,
    parse_structured,
    to_contents,
)
from nexus_learn.config.settings import Settings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class MockOutput(BaseModel):
    title: str
    confidence: float


def _text_payload(text: str, prompt_tokens: int = 10, out_tokens: int = 5) -> dict:
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}}],
        "usageMetadata": {
            "promptTokenCount": prompt_tokens,
            "candidatesTokenCount": out_tokens,
        },
    }


def _client_with(handler, **kwargs) -> LLMClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LLMClient(api_key="test-key", base_delay=0.0, http_client=http, **kwargs)


# ===================================================================
# Structured output
# ===================================================================


class TestStructuredOutput:
    """Validate structured JSON parsing with Pydantic."""

    def test_parse_valid_json(self) -> None:
        parsed = parse_structured('{"title": "Lab", "confidence": 0.92}', MockOutput)
        assert parsed.title == "Lab"
        assert parsed.confidence == 0.92

    def test_parse_invalid_json_raises(self) -> None:
        with pytest.raises(MalformedResponse):
            parse_structured("not json at all", MockOutput)

    def test_malformed_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_structured('{"title": "Lab"}', MockOutput)

    def test_extract_json_from_markdown(self) -> None:
        raw = '```json\n{"title": "Lab", "confidence": 0.85}\n```'
        assert parse_structured(raw, MockOutput).title == "Lab"

    def test_unterminated_fence_is_stripped(self) -> None:
        raw = '```json\n{"title": "Lab", "confidence": 0.5}'
        assert parse_structured(raw, MockOutput).confidence == 0.5

    def test_to_contents_maps_roles(self) -> None:
        contents = to_contents([("user", "hi"), ("model", "hello")])
        assert [c["role"] for c in contents] == ["user", "model"]
        assert contents[1]["parts"] == [{"text": "hello"}]


# ===================================================================
# Provider availability
# ===================================================================


class TestProviderAvailability:

    def test_no_key_is_offline(self) -> None:
        client = LLMClient(api_key="")
        assert client.provider == LLMProvider.OFFLINE
        assert client.is_available is False

    def test_key_is_gemini(self) -> None:
        client = LLMClient(api_key="k")
        assert client.provider == LLMProvider.GEMINI
        assert client.is_available is True

    def test_from_settings(self) -> None:
        settings = Settings(GEMINI_API_KEY="abc", TEXT_MODEL="m-text", LLM_MAX_RETRIES=4)
        client = LLMClient.from_settings(settings)
        assert client.text_model == "m-text"
        assert client.max_retries == 4
        assert client.is_available is True

    async def test_offline_call_raises_upstream_failure(self) -> None:
        client = LLMClient(api_key="")
        with pytest.raises(UpstreamFailure):
            await client.generate_text(contents="hello")


# ===================================================================
# HTTP behaviour
# ===================================================================


class TestGenerateText:

    async def test_sends_schema_and_system_prompt(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_text_payload('{"ok": true}'))

        client = _client_with(handler, text_model="text-m")
        text = await client.generate_text(
            contents="Go",
            system_prompt="Be brief.",
            response_schema={"type": "OBJECT"},
        )

        assert text == '{"ok": true}'
        request = seen[0]
        assert request.url.path.endswith("/models/text-m:generateContent")
        assert request.headers["x-goog-api-key"] == "test-key"
        body = json.loads(request.content)
        assert body["systemInstruction"]["parts"][0]["text"] == "Be brief."
        assert body["generationConfig"]["responseMimeType"] == "application/json"
        assert body["contents"][0]["parts"][0]["text"] == "Go"

    async def test_retries_transient_status_then_succeeds(self) -> None:
        statuses = [503, 429]

        def handler(request: httpx.Request) -> httpx.Response:
            if statuses:
                return httpx.Response(statuses.pop(0))
            return httpx.Response(200, json=_text_payload("done"))

        client = _client_with(handler, max_retries=2)
        assert await client.generate_text(contents="x") == "done"

    async def test_gives_up_after_max_retries(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(500)

        client = _client_with(handler, max_retries=2)
        with pytest.raises(UpstreamFailure):
            await client.generate_text(contents="x")
        assert calls == 3

    async def test_client_error_is_not_retried(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(400, json={"error": "bad"})

        client = _client_with(handler, max_retries=3)
        with pytest.raises(UpstreamFailure, match="HTTP 400"):
            await client.generate_text(contents="x")
        assert calls == 1

    async def test_transport_error_is_retried(self) -> None:
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=_text_payload("recovered"))

        client = _client_with(handler, max_retries=1)
        assert await client.generate_text(contents="x") == "recovered"

    async def test_empty_text_raises(self) -> None:
        client = _client_with(lambda r: httpx.Response(200, json={"candidates": []}))
        with pytest.raises(UpstreamFailure):
            await client.generate_text(contents="x")

    async def test_empty_text_allowed(self) -> None:
        client = _client_with(lambda r: httpx.Response(200, json=_text_payload("  ")))
        assert await client.generate_text(contents="x", allow_empty=True) == "  "

    async def test_non_json_body_raises(self) -> None:
        client = _client_with(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(UpstreamFailure):
            await client.generate_text(contents="x")


class TestGenerateImage:

    async def test_returns_data_url(self) -> None:
        payload = {
            "candidates": [{"content": {"parts": [
                {"text": "here you go"},
                {"inlineData": {"mimeType": "image/jpeg", "data": "QUJD"}},
            ]}}],
        }
        client = _client_with(lambda r: httpx.Response(200, json=payload))
        assert await client.generate_image("a lab") == "data:image/jpeg;base64,QUJD"

    async def test_no_inline_data_returns_none(self) -> None:
        client = _client_with(lambda r: httpx.Response(200, json=_text_payload("no image")))
        assert await client.generate_image("a lab") is None


# ===================================================================
# Retry configuration
# ===================================================================


class TestRetryConfig:

    def test_default_retry_config(self) -> None:
        client = LLMClient()
        assert client.max_retries == 2
        assert client.base_delay == 0.5

    def test_backoff_delays(self) -> None:
        client = LLMClient(max_retries=3, base_delay=1.0)
        assert client.compute_backoff_delays() == [1.0, 2.0, 4.0]

