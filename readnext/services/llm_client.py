"""
Language-model client abstraction supporting Gemini and Anthropic.

Model replies are freeform text that is expected to embed JSON, so this
module also carries the helpers that dig the JSON back out.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

import httpx

from readnext.core.config import Settings, get_settings
from readnext.core.logging import get_logger

logger = get_logger(__name__)

INDEX_ARRAY_PATTERN = re.compile(r"\[\s*-?\d+(?:\s*,\s*-?\d+)*\s*\]")


class LLMError(Exception):
    """The language-model service could not produce a usable reply."""


class LLMResponseError(LLMError):
    """The reply did not contain the expected JSON payload."""


class LLMClient(ABC):
    """Abstract base class for language-model clients."""

    provider: str = ""

    def __init__(self, api_key: str, model: str, client: httpx.AsyncClient):
        self.api_key = api_key
        self.model = model
        self.client = client

    async def close(self):
        await self.client.aclose()

    async def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        """
        Send a single-turn prompt and return the reply text.

        Raises:
            LLMError: On transport errors, timeouts, non-2xx replies or
                an unrecognised response shape
        """
        try:
            response = await self._post(prompt, system_prompt)
        except httpx.TimeoutException as e:
            raise LLMError(f"{self.provider} request timed out") from e
        except httpx.HTTPError as e:
            raise LLMError(f"{self.provider} request failed: {e}") from e

        if response.status_code >= 400:
            raise LLMError(f"{self.provider} API error {response.status_code}: {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as e:
            raise LLMError(f"{self.provider} returned a non-JSON body") from e

        text = self._extract_text(data)
        if not text:
            raise LLMError(f"{self.provider} returned an empty reply")

        logger.debug(
            "Received language-model reply",
            extra={"extra_fields": {"provider": self.provider, "chars": len(text)}},
        )
        return text

    @abstractmethod
    async def _post(self, prompt: str, system_prompt: str | None) -> httpx.Response:
        """Issue the provider-specific request."""

    @abstractmethod
    def _extract_text(self, data: Any) -> str | None:
        """Pull the reply text out of the provider-specific payload."""


class GeminiClient(LLMClient):
    """Client for the Gemini generateContent REST API."""

    provider = "gemini"

    async def _post(self, prompt: str, system_prompt: str | None) -> httpx.Response:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        return await self.client.post(
            f"/models/{self.model}:generateContent",
            params={"key": self.api_key},
            json=payload,
        )

    def _extract_text(self, data: Any) -> str | None:
        try:
            parts = data["candidates"][0]["content"]["parts"]
            return "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError):
            return None


class AnthropicClient(LLMClient):
    """Client for the Anthropic Messages API."""

    provider = "anthropic"
    max_tokens = 2048

    async def _post(self, prompt: str, system_prompt: str | None) -> httpx.Response:
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            payload["system"] = system_prompt

        return await self.client.post(
            "/messages",
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
            },
            json=payload,
        )

    def _extract_text(self, data: Any) -> str | None:
        try:
            return "".join(
                block.get("text", "") for block in data["content"] if block.get("type", "text") == "text"
            )
        except (KeyError, TypeError, AttributeError):
            return None


def create_llm_client(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> LLMClient | None:
    """
    Build the client for the configured provider.

    Returns None when no credential is configured, which switches the
    recommendation pipeline to its heuristic strategy.
    """
    settings = settings or get_settings()
    if not settings.llm_enabled:
        return None

    provider = settings.LLM_PROVIDER.lower()
    if provider == "gemini":
        http = httpx.AsyncClient(
            base_url=settings.GEMINI_BASE_URL,
            timeout=settings.LLM_TIMEOUT_SECONDS,
            transport=transport,
        )
        return GeminiClient(settings.GEMINI_API_KEY, settings.GEMINI_MODEL, http)

    if provider == "anthropic":
        http = httpx.AsyncClient(
            base_url=settings.ANTHROPIC_BASE_URL,
            timeout=settings.LLM_TIMEOUT_SECONDS,
            transport=transport,
        )
        return AnthropicClient(settings.ANTHROPIC_API_KEY, settings.ANTHROPIC_MODEL, http)

    raise ValueError(f"Unknown LLM provider: {settings.LLM_PROVIDER}")


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Return the first well-formed JSON object embedded in a model reply.

    Handles bare JSON, markdown code fences and JSON surrounded by prose.

    Raises:
        LLMResponseError: If no JSON object can be decoded
    """
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)

    logger.debug("No JSON object in model reply", extra={"extra_fields": {"reply": text[:500]}})
    raise LLMResponseError("Reply did not contain a JSON object")


def extract_index_array(text: str) -> list[int]:
    """
    Return the first bracketed integer array embedded in a model reply.

    Raises:
        LLMResponseError: If no integer array is present
    """
    match = INDEX_ARRAY_PATTERN.search(text)
    if not match:
        raise LLMResponseError("Reply did not contain an index array")
    return [int(value) for value in json.loads(match.group())]
