"""Contract tests for LLM providers.

All providers implement complete(prompt, system=None, json_mode=False)
and raise LLMError on any failure.
"""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from src.lib.exceptions import LLMError
from src.lib.config import Settings
from src.services.llm import create_provider, get_provider, register_provider
from src.services.llm.deepseek import DeepSeekProvider
from src.services.llm.mock import MockProvider
from src.services.llm.openai import OpenAIProvider


def _response(status_code: int, body) -> httpx.Response:
    request = httpx.Request("POST", "https://api.example.com/v1/chat/completions")
    return httpx.Response(status_code, json=body, request=request)


def _patched_client(response=None, side_effect=None):
    """Patch httpx.Client so post() returns response (or raises side_effect)."""
    client = MagicMock()
    client.__enter__.return_value = client
    client.post.return_value = response
    if side_effect is not None:
        client.post.side_effect = side_effect
    return patch("src.services.llm.openai.httpx.Client", return_value=client), client


class TestRegistry:
    def test_known_providers(self):
        assert isinstance(get_provider("mock"), MockProvider)
        assert isinstance(get_provider("openai", api_key="k"), OpenAIProvider)
        assert isinstance(get_provider("deepseek", api_key="k"), DeepSeekProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError) as exc_info:
            get_provider("nope")

        assert "Available" in str(exc_info.value)

    def test_register_provider(self):
        register_provider("custom", MockProvider)

        assert isinstance(get_provider("custom"), MockProvider)

    def test_create_from_settings(self):
        settings = Settings(
            LLM_PROVIDER="deepseek",
            DEEPSEEK_API_KEY="ds-key",
            LLM_MODEL="deepseek-reasoner",
            _env_file=None,
        )

        provider = create_provider(settings)

        assert isinstance(provider, DeepSeekProvider)
        assert provider._model == "deepseek-reasoner"


class TestMockProvider:
    def test_plain_completion_returns_first_words(self):
        provider = MockProvider()

        assert provider.complete("one two three four five\nsecond") == "one two three four"

    def test_json_mode_returns_empty_split(self):
        assert json.loads(MockProvider().complete("x", json_mode=True)) == {
            "existing": [],
            "new": [],
        }

    def test_records_calls(self):
        provider = MockProvider(response="Title")

        assert provider.complete("x", system="sys") == "Title"
        assert provider.calls == [{"prompt": "x", "system": "sys", "json_mode": False}]


class TestOpenAIProvider:
    """OpenAI-compatible chat completions over httpx."""

    def test_successful_completion(self):
        patcher, client = _patched_client(
            _response(200, {"choices": [{"message": {"content": "  Title  "}}]})
        )
        provider = OpenAIProvider(api_key="sk-test", model="gpt-test")

        with patcher:
            result = provider.complete("hello", system="be brief", json_mode=True)

        assert result == "Title"
        payload = client.post.call_args.kwargs["json"]
        assert payload["model"] == "gpt-test"
        assert payload["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hello"},
        ]
        assert payload["response_format"] == {"type": "json_object"}
        assert client.post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"

    def test_plain_mode_has_no_response_format(self):
        patcher, client = _patched_client(
            _response(200, {"choices": [{"message": {"content": "x"}}]})
        )

        with patcher:
            OpenAIProvider(api_key="sk-test").complete("hello")

        assert "response_format" not in client.post.call_args.kwargs["json"]

    def test_api_error_message_surfaced(self):
        patcher, _ = _patched_client(_response(401, {"error": {"message": "Invalid key"}}))

        with patcher, pytest.raises(LLMError) as exc_info:
            OpenAIProvider(api_key="bad").complete("hello")

        assert "Invalid key" in str(exc_info.value)

    def test_empty_choices(self):
        patcher, _ = _patched_client(_response(200, {"choices": []}))

        with patcher, pytest.raises(LLMError):
            OpenAIProvider(api_key="sk-test").complete("hello")

    def test_timeout_wrapped(self):
        patcher, _ = _patched_client(side_effect=httpx.ReadTimeout("slow"))

        with patcher, pytest.raises(LLMError) as exc_info:
            OpenAIProvider(api_key="sk-test", timeout=5).complete("hello")

        assert "timed out" in str(exc_info.value)
        assert isinstance(exc_info.value.original_error, httpx.ReadTimeout)

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(LLMError):
            OpenAIProvider().complete("hello")

    def test_empty_prompt(self):
        with pytest.raises(LLMError):
            OpenAIProvider(api_key="sk-test").complete("   ")


class TestDeepSeekProvider:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DEEPSEEK_BASE_URL", raising=False)
        provider = DeepSeekProvider(api_key="k")

        assert provider.provider_name == "deepseek"
        assert provider._api_url.startswith(DeepSeekProvider.DEFAULT_BASE_URL)
        assert provider._model == DeepSeekProvider.DEFAULT_MODEL
