"""LLM client for the Gemini generative language API.

Unified async interface with:
- Text generation with optional JSON response schema
- Image generation returning a ``data:`` URL
- Structured JSON output with Pydantic validation (markdown fences stripped)
- Retry with exponential backoff on transient HTTP errors

Deadlines are imposed by callers (see errors.with_deadline); the client
itself only retries and classifies failures.
"""

import asyncio
import json
import logging
import re
from enum import StrEnum
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from nexus_learn.agents.errors import MalformedResponse, UpstreamFailure
from nexus_learn.config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


# ---------------------------------------------------------------------------
# Provider enum
# ---------------------------------------------------------------------------


class LLMProvider(StrEnum):
    """Supported LLM providers."""

    GEMINI = "GEMINI"
    OFFLINE = "OFFLINE"


# ---------------------------------------------------------------------------
# JSON extraction helpers
# ---------------------------------------------------------------------------

_JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def _extract_json(raw: str) -> str:
    """Extract JSON from raw LLM output, stripping markdown fences."""
    match = _JSON_BLOCK_RE.search(raw)
    if match:
        return match.group(1).strip()
    return raw.replace("```json", "").replace("```", "").strip()


def parse_structured(raw: str, schema: type[T]) -> T:
    """Strip fences, parse JSON once and validate against ``schema``.

    Raises MalformedResponse if JSON is invalid or fails schema validation.
    """
    cleaned = _extract_json(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(f"Invalid JSON from LLM: {exc}") from exc
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponse(f"Schema validation failed: {exc}") from exc


def to_contents(turns: list[tuple[str, str]]) -> list[dict]:
    """Convert ``(role, text)`` pairs into Gemini ``Content`` objects."""
    return [
        {"role": "user" if role == "user" else "model", "parts": [{"text": text}]}
        for role, text in turns
    ]


# ---------------------------------------------------------------------------
# LLM client
# ---------------------------------------------------------------------------


class LLMClient:
    """Async Gemini client with retry and failure classification."""

    def __init__(
        self,
        *,
        api_key: str = "",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        text_model: str = "gemini-3-flash-preview",
        image_model: str = "gemini-2.5-flash-image",
        max_retries: int = 2,
        base_delay: float = 0.5,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self.text_model = text_model
        self.image_model = image_model
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._http = http_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMClient":
        return cls(
            api_key=settings.GEMINI_API_KEY,
            base_url=settings.GEMINI_BASE_URL,
            text_model=settings.TEXT_MODEL,
            image_model=settings.IMAGE_MODEL,
            max_retries=settings.LLM_MAX_RETRIES,
        )

    # ----- Provider availability -----

    @property
    def provider(self) -> LLMProvider:
        return LLMProvider.GEMINI if self._api_key else LLMProvider.OFFLINE

    @property
    def is_available(self) -> bool:
        """True when an API key is configured."""
        return self.provider != LLMProvider.OFFLINE

    # ----- Retry / backoff -----

    def compute_backoff_delays(self) -> list[float]:
        """Compute exponential backoff delays for retries."""
        return [self.base_delay * (2**i) for i in range(self.max_retries)]

    # ----- Generation -----

    async def generate_text(
        self,
        *,
        contents: list[dict] | str,
        system_prompt: str = "",
        response_schema: dict | None = None,
        allow_empty: bool = False,
    ) -> str:
        """Generate text and return the first candidate's concatenated parts.

        With ``response_schema`` the model is asked for JSON matching it.
        Raises UpstreamFailure on HTTP errors, or on an empty payload unless
        ``allow_empty`` is set.
        """
        body: dict[str, Any] = {"contents": self._normalize_contents(contents)}
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        if response_schema is not None:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            }

        payload = await self._post(self.text_model, body)
        text = "".join(
            part.get("text", "") for part in self._first_candidate_parts(payload)
        )
        if not text.strip() and not allow_empty:
            raise UpstreamFailure("No text in model response")
        return text

    async def generate_image(self, prompt: str) -> str | None:
        """Generate an image; return it as a ``data:`` URL, or None if absent."""
        body = {"contents": self._normalize_contents(prompt)}
        payload = await self._post(self.image_model, body)
        for part in self._first_candidate_parts(payload):
            inline = part.get("inlineData") or {}
            data = inline.get("data")
            if data:
                mime = inline.get("mimeType", "image/png")
                return f"data:{mime};base64,{data}"
        return None

    # ----- HTTP plumbing -----

    async def _post(self, model: str, body: dict) -> dict:
        if not self.is_available:
            raise UpstreamFailure("LLM client is offline: no API key configured")

        url = f"{self._base_url}/models/{model}:generateContent"
        headers = {"x-goog-api-key": self._api_key}
        delays = self.compute_backoff_delays()
        attempt = 0

        while True:
            try:
                response = await self._send(url, body, headers)
                response.raise_for_status()
                payload = response.json()
                break
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status not in _RETRYABLE_STATUS or attempt >= len(delays):
                    raise UpstreamFailure(f"{model} returned HTTP {status}") from exc
                logger.warning("%s returned HTTP %d, retrying", model, status)
            except httpx.TransportError as exc:
                if attempt >= len(delays):
                    raise UpstreamFailure(f"{model} transport error: {exc}") from exc
                logger.warning("%s transport error: %s, retrying", model, exc)
            except ValueError as exc:
                raise UpstreamFailure(f"{model} returned a non-JSON body") from exc
            await asyncio.sleep(delays[attempt])
            attempt += 1

        usage = payload.get("usageMetadata") or {}
        logger.debug(
            "%s usage: %d input tokens, %d output tokens",
            model,
            usage.get("promptTokenCount", 0),
            usage.get("candidatesTokenCount", 0),
        )
        return payload

    async def _send(self, url: str, body: dict, headers: dict) -> httpx.Response:
        if self._http is not None:
            return await self._http.post(url, json=body, headers=headers)
        async with httpx.AsyncClient(timeout=None) as client:
            return await client.post(url, json=body, headers=headers)

    @staticmethod
    def _normalize_contents(contents: list[dict] | str) -> list[dict]:
        if isinstance(contents, str):
            return [{"role": "user", "parts": [{"text": contents}]}]
        return contents

    @staticmethod
    def _first_candidate_parts(payload: dict) -> list[dict]:
        candidates = payload.get("candidates") or []
        if not candidates:
            return []
        content = candidates[0].get("content") or {}
        return content.get("parts") or []
