"""
OpenAI-compatible client factory and completion transport for bulkproc.

DeepSeek exposes an OpenAI-compatible chat completions API, so the official
``openai`` SDK is used with a custom ``base_url``.

Environment Variables:
    DEEPSEEK_API_KEY: API key sent as a bearer token
    DEEPSEEK_BASE_URL: Override for the API base URL (optional)

Usage:
    >>> from bulkproc.config import load_engine_config
    >>> from bulkproc.utils.openai_client import OpenAICompletionTransport, get_async_client
    >>> transport = OpenAICompletionTransport(get_async_client(load_engine_config()))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import openai

from ..config import EngineConfig
from ..errors import TransportError, UpstreamError, UpstreamTimeoutError
from ..types import CompletionRequest, CompletionResponse, TokenUsage

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


def get_async_client(config: EngineConfig) -> "AsyncOpenAI":
    """
    Create an async client for the configured completion service.

    SDK-level retries are disabled; RetryingExecutor owns retry policy.

    Raises:
        ValueError: If no API key is configured
    """
    if not config.api_key:
        raise ValueError(
            "No API key configured. Set DEEPSEEK_API_KEY "
            "(get one from https://platform.deepseek.com/api_keys)"
        )

    logger.info("Using completion service at %s", config.base_url)
    return openai.AsyncOpenAI(
        api_key=config.api_key,
        base_url=config.base_url,
        timeout=config.request_timeout,
        max_retries=0,
    )


def _error_message(error: openai.APIStatusError) -> str:
    body = error.body
    if isinstance(body, dict):
        nested = body.get("error")
        if isinstance(nested, dict) and nested.get("message"):
            return str(nested["message"])
        if body.get("message"):
            return str(body["message"])
    return error.message or "Unknown error"


class OpenAICompletionTransport:
    """Sends CompletionRequests through an ``openai.AsyncOpenAI`` client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        try:
            completion = await self._client.chat.completions.create(
                model=request.model,
                messages=request.messages_payload(),
                temperature=request.temperature,
                max_tokens=request.max_tokens,
            )
        except openai.APITimeoutError as e:
            # Subclass of APIConnectionError; must be checked first.
            raise UpstreamTimeoutError(self._timeout()) from e
        except openai.APIConnectionError as e:
            raise TransportError(f"Connection to completion service failed: {e}") from e
        except openai.APIStatusError as e:
            raise UpstreamError(e.status_code, _error_message(e)) from e

        return self._to_response(completion)

    async def aclose(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            await close()

    def _timeout(self) -> float:
        timeout = getattr(self._client, "timeout", None)
        return timeout if isinstance(timeout, (int, float)) else 0.0

    @staticmethod
    def _to_response(completion: Any) -> CompletionResponse:
        text: Optional[str] = None
        choices = getattr(completion, "choices", None) or []
        if choices:
            message = getattr(choices[0], "message", None)
            text = getattr(message, "content", None) if message is not None else None

        usage = getattr(completion, "usage", None)
        token_usage = TokenUsage(
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        ) if usage is not None else TokenUsage()

        return CompletionResponse(
            text=text,
            usage=token_usage,
            model=getattr(completion, "model", None),
        )
