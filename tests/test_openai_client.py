"""
Tests for the OpenAI-compatible completion transport.

The SDK client is replaced by a mock; SDK exceptions are built against
real httpx request/response objects.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from bulkproc.config import EngineConfig
from bulkproc.errors import TransportError, UpstreamError, UpstreamTimeoutError
from bulkproc.types import ChatMessage, CompletionRequest
from bulkproc.utils.openai_client import OpenAICompletionTransport, get_async_client

URL = "https://api.deepseek.com/v1/chat/completions"

REQUEST = CompletionRequest(
    model="deepseek-chat",
    messages=[
        ChatMessage(role="system", content="Summarize."),
        ChatMessage(role="user", content="Some text."),
    ],
    temperature=0.7,
    max_tokens=2048,
)


def make_client(side_effect=None, return_value=None) -> MagicMock:
    client = MagicMock()
    client.timeout = 30.0
    client.chat.completions.create = AsyncMock(side_effect=side_effect, return_value=return_value)
    client.close = AsyncMock()
    return client


def status_error(status: int, body) -> openai.APIStatusError:
    request = httpx.Request("POST", URL)
    response = httpx.Response(status, request=request)
    return openai.APIStatusError("upstream failed", response=response, body=body)


def completion(text, prompt_tokens=100, completion_tokens=50, usage=True):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
        if usage
        else None,
        model="deepseek-chat",
    )


class TestOpenAICompletionTransport:
    """Tests for OpenAICompletionTransport."""

    @pytest.mark.asyncio
    async def test_maps_completion_to_response(self) -> None:
        client = make_client(return_value=completion("A short summary."))
        transport = OpenAICompletionTransport(client)

        response = await transport.complete(REQUEST)

        assert response.text == "A short summary."
        assert response.usage.prompt_tokens == 100
        assert response.usage.completion_tokens == 50
        assert response.model == "deepseek-chat"
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "deepseek-chat"
        assert kwargs["messages"] == [
            {"role": "system", "content": "Summarize."},
            {"role": "user", "content": "Some text."},
        ]
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 2048

    @pytest.mark.asyncio
    async def test_missing_usage_reports_zero_tokens(self) -> None:
        transport = OpenAICompletionTransport(make_client(return_value=completion("ok", usage=False)))

        response = await transport.complete(REQUEST)

        assert response.usage.total_tokens == 0

    @pytest.mark.asyncio
    async def test_no_choices_gives_empty_text(self) -> None:
        empty = SimpleNamespace(choices=[], usage=None, model="deepseek-chat")
        transport = OpenAICompletionTransport(make_client(return_value=empty))

        response = await transport.complete(REQUEST)

        assert response.text is None

    @pytest.mark.asyncio
    async def test_status_error_maps_to_upstream_error(self) -> None:
        error = status_error(503, {"error": {"message": "Service overloaded"}})
        transport = OpenAICompletionTransport(make_client(side_effect=error))

        with pytest.raises(UpstreamError) as exc_info:
            await transport.complete(REQUEST)

        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable
        assert str(exc_info.value) == "Upstream API error: 503 - Service overloaded"

    @pytest.mark.asyncio
    async def test_auth_error_is_permanent(self) -> None:
        error = status_error(401, {"error": {"message": "Invalid API key"}})
        transport = OpenAICompletionTransport(make_client(side_effect=error))

        with pytest.raises(UpstreamError) as exc_info:
            await transport.complete(REQUEST)

        assert exc_info.value.permanent
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_timeout_maps_to_upstream_timeout(self) -> None:
        error = openai.APITimeoutError(request=httpx.Request("POST", URL))
        transport = OpenAICompletionTransport(make_client(side_effect=error))

        with pytest.raises(UpstreamTimeoutError) as exc_info:
            await transport.complete(REQUEST)

        assert exc_info.value.retryable
        assert "30" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_transport_error(self) -> None:
        error = openai.APIConnectionError(request=httpx.Request("POST", URL))
        transport = OpenAICompletionTransport(make_client(side_effect=error))

        with pytest.raises(TransportError) as exc_info:
            await transport.complete(REQUEST)

        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self) -> None:
        client = make_client()
        transport = OpenAICompletionTransport(client)

        await transport.aclose()

        client.close.assert_awaited_once()


class TestGetAsyncClient:
    def test_missing_api_key_raises(self) -> None:
        with pytest.raises(ValueError, match="DEEPSEEK_API_KEY"):
            get_async_client(EngineConfig(api_key=None))

    def test_client_uses_configured_endpoint(self) -> None:
        config = EngineConfig(api_key="sk-test", base_url="https://example.test/v1", request_timeout=12.0)

        client = get_async_client(config)

        assert isinstance(client, openai.AsyncOpenAI)
        assert str(client.base_url).startswith("https://example.test/v1")
        assert client.max_retries == 0
