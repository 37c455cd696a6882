"""Utility helpers for bulkproc."""

from .logging_config import setup_logging
from .openai_client import OpenAICompletionTransport, get_async_client

__all__ = [
    "setup_logging",
    "OpenAICompletionTransport",
    "get_async_client",
]
