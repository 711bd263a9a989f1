"""Tests for the language-model clients and reply parsing."""

import asyncio
import json

import httpx
import pytest

from conftest import json_transport
from readnext.core.config import Settings
from readnext.services.llm_client import (
    AnthropicClient,
    GeminiClient,
    LLMError,
    LLMResponseError,
    create_llm_client,
    extract_index_array,
    extract_json_object,
)


class TestCreateClient:
    """Test provider selection."""

    def test_no_key_disables_model(self):
        assert create_llm_client(Settings(GEMINI_API_KEY="", LLM_PROVIDER="gemini")) is None

    def test_gemini_provider(self):
        client = create_llm_client(Settings(GEMINI_API_KEY="g-key", LLM_PROVIDER="gemini"))
        assert isinstance(client, GeminiClient)
        asyncio.run(client.close())

    def test_anthropic_provider(self):
        client = create_llm_client(Settings(ANTHROPIC_API_KEY="a-key", LLM_PROVIDER="anthropic"))
        assert isinstance(client, AnthropicClient)
        asyncio.run(client.close())

    def test_unknown_provider(self):
        settings = Settings(LLM_PROVIDER="other", GEMINI_API_KEY="g-key")
        # Unknown providers have no credential, so the model is simply off
        assert create_llm_client(settings) is None


class TestGeminiClient:
    """Test the Gemini generateContent client."""

    def test_generate_returns_reply_text(self):
        seen = []

        def handler(request: httpx.Request):
            seen.append(request)
            return 200, {"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "reader"}]}}]}

        settings = Settings(GEMINI_API_KEY="g-key", LLM_PROVIDER="gemini")
        client = create_llm_client(settings, transport=json_transport(handler))

        reply = asyncio.run(client.generate("Recommend something", system_prompt="Be brief"))

        assert reply == "Hello reader"
        request = seen[0]
        assert request.url.path.endswith(f"/models/{settings.GEMINI_MODEL}:generateContent")
        assert request.url.params["key"] == "g-key"
        body = json.loads(request.content)
        assert body["contents"][0]["parts"][0]["text"] == "Recommend something"
        assert body["systemInstruction"]["parts"][0]["text"] == "Be brief"

    def test_error_status_raises(self):
        settings = Settings(GEMINI_API_KEY="g-key")
        client = create_llm_client(settings, transport=json_transport(lambda request: (429, {"error": "quota"})))

        with pytest.raises(LLMError):
            asyncio.run(client.generate("prompt"))

    def test_unexpected_shape_raises(self):
        settings = Settings(GEMINI_API_KEY="g-key")
        client = create_llm_client(settings, transport=json_transport(lambda request: (200, {"candidates": []})))

        with pytest.raises(LLMError):
            asyncio.run(client.generate("prompt"))

    def test_timeout_raises(self):
        def handler(request: httpx.Request):
            raise httpx.ReadTimeout("timed out", request=request)

        settings = Settings(GEMINI_API_KEY="g-key")
        client = create_llm_client(settings, transport=httpx.MockTransport(handler))

        with pytest.raises(LLMError, match="timed out"):
            asyncio.run(client.generate("prompt"))


class TestAnthropicClient:
    """Test the Anthropic Messages client."""

    def test_generate_sends_headers(self):
        seen = []

        def handler(request: httpx.Request):
            seen.append(request)
            return 200, {"content": [{"type": "text", "text": "[0, 1]"}]}

        settings = Settings(ANTHROPIC_API_KEY="a-key", LLM_PROVIDER="anthropic")
        client = create_llm_client(settings, transport=json_transport(handler))

        reply = asyncio.run(client.generate("Rank these", system_prompt="Be brief"))

        assert reply == "[0, 1]"
        assert seen[0].headers["x-api-key"] == "a-key"
        assert "anthropic-version" in seen[0].headers
        body = json.loads(seen[0].content)
        assert body["system"] == "Be brief"
        assert body["messages"] == [{"role": "user", "content": "Rank these"}]


class TestExtractJsonObject:
    """Test JSON extraction from model replies."""

    def test_bare_json(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_code_fence(self):
        reply = 'Here you go:\n```json\n{"searchQueries": ["dune"], "topGenres": []}\n```'
        assert extract_json_object(reply)["searchQueries"] == ["dune"]

    def test_skips_broken_braces(self):
        reply = 'Use {curly} braces like this: {"ok": true}'
        assert extract_json_object(reply) == {"ok": True}

    def test_no_json_raises(self):
        with pytest.raises(LLMResponseError):
            extract_json_object("I could not decide.")


class TestExtractIndexArray:
    """Test index-array extraction from ranking replies."""

    def test_array_in_prose(self):
        assert extract_index_array("The best are [3, 0, 12] in that order.") == [3, 0, 12]

    def test_multiline_array(self):
        assert extract_index_array("[\n  1,\n  2\n]") == [1, 2]

    def test_no_array_raises(self):
        with pytest.raises(LLMResponseError):
            extract_index_array("none of them")
