"""Tests for LLM client."""

import httpx
import pytest
from unittest.mock import AsyncMock, patch, MagicMock

from textarr.core.exceptions import LLMRateLimitError, LLMTimeoutError
from textarr.llm.client import AnthropicClient, LLMResponse, OpenAIClient, get_llm_client


def make_anthropic(**kwargs):
    return AnthropicClient(
        model="claude-haiku-4-5",
        temperature=0.2,
        max_tokens=512,
        timeout=30.0,
        api_key="test-key",
        **kwargs,
    )


def mock_http(MockClient, response=None, side_effect=None):
    mock_client = AsyncMock()
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.return_value = response
    MockClient.return_value.__aenter__.return_value = mock_client
    return mock_client


class TestAnthropicClient:
    """Tests for AnthropicClient."""

    def test_init_without_api_key_raises(self):
        """Client raises if no API key available."""
        with patch("textarr.llm.client.settings") as mock_settings:
            mock_settings.anthropic_api_key = None
            with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
                AnthropicClient(
                    model="claude-haiku-4-5", temperature=0.2, max_tokens=512, timeout=30.0
                )

    def test_init_uses_settings_key(self):
        with patch("textarr.llm.client.settings") as mock_settings:
            mock_settings.anthropic_api_key = "settings-key"

            client = AnthropicClient(
                model="claude-haiku-4-5", temperature=0.2, max_tokens=512, timeout=30.0
            )

            assert client.api_key == "settings-key"

    @pytest.mark.asyncio
    async def test_complete_success(self):
        """complete() returns LLMResponse on success."""
        mock_response_obj = MagicMock()
        mock_response_obj.json.return_value = {
            "content": [{"type": "text", "text": '{"action": "help"}'}],
            "model": "claude-haiku-4-5",
            "usage": {"input_tokens": 10, "output_tokens": 5},
        }

        with patch("httpx.AsyncClient") as MockClient:
            mock_client = mock_http(MockClient, mock_response_obj)

            response = await make_anthropic().complete("help", system="Parse intents")

            assert isinstance(response, LLMResponse)
            assert response.content == '{"action": "help"}'
            assert response.usage == {"input_tokens": 10, "output_tokens": 5}
            payload = mock_client.post.call_args.kwargs["json"]
            assert payload["system"] == "Parse intents"
            assert mock_client.post.call_args.args[0].endswith("/messages")

    @pytest.mark.asyncio
    async def test_timeout_raises_llm_timeout(self):
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, side_effect=httpx.ReadTimeout("timed out"))

            with pytest.raises(LLMTimeoutError):
                await make_anthropic().complete("Add Dune")

    @pytest.mark.asyncio
    async def test_429_raises_rate_limit(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, httpx.Response(429, request=request))

            with pytest.raises(LLMRateLimitError):
                await make_anthropic().complete("Add Dune")

    @pytest.mark.asyncio
    async def test_other_status_propagates(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, httpx.Response(500, request=request))

            with pytest.raises(httpx.HTTPStatusError):
                await make_anthropic().complete("Add Dune")


class TestOpenAIClient:
    """Tests for OpenAIClient."""

    @pytest.mark.asyncio
    async def test_complete_requests_json_output(self):
        mock_response_obj = MagicMock()
        mock_response_obj.json.return_value = {
            "choices": [{"message": {"content": '{"action": "status"}'}}],
            "model": "gpt-4o-mini",
            "usage": {"prompt_tokens": 30, "completion_tokens": 4},
        }

        with patch("httpx.AsyncClient") as MockClient:
            mock_client = mock_http(MockClient, mock_response_obj)
            client = OpenAIClient(
                model="gpt-4o-mini",
                temperature=0.2,
                max_tokens=512,
                timeout=30.0,
                api_key="test-key",
            )

            response = await client.complete("status?", system="Parse intents")

            assert response.content == '{"action": "status"}'
            assert response.usage == {"input_tokens": 30, "output_tokens": 4}
            payload = mock_client.post.call_args.kwargs["json"]
            assert payload["response_format"] == {"type": "json_object"}
            assert payload["messages"][0] == {"role": "system", "content": "Parse intents"}


class TestGetLLMClient:
    """Tests for get_llm_client factory."""

    def test_returns_configured_provider(self):
        with patch("textarr.llm.client.settings") as mock_settings:
            mock_settings.llm_provider = "anthropic"
            mock_settings.llm_model = None
            mock_settings.llm_timeout_seconds = 12.0
            mock_settings.anthropic_api_key = "test-key"

            client = get_llm_client()

            assert isinstance(client, AnthropicClient)
            assert client.model == "claude-haiku-4-5"
            assert client.timeout == 12.0

    def test_model_override(self):
        with patch("textarr.llm.client.settings") as mock_settings:
            mock_settings.llm_model = "gpt-4o"
            mock_settings.llm_timeout_seconds = 30.0
            mock_settings.openai_api_key = "test-key"

            client = get_llm_client("openai")

            assert isinstance(client, OpenAIClient)
            assert client.model == "gpt-4o"

    def test_raises_for_unknown_provider(self):
        """Factory raises for unknown provider."""
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            get_llm_client("kimi")
