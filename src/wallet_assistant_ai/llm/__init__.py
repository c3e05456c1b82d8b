"""LLM provider abstraction layer for Wallet Assistant AI.

Provides a unified interface over Anthropic, OpenAI and any
OpenAI-compatible endpoint so the intent parser can ask any of them for a
structured reading of a chat message.
"""

from wallet_assistant_ai.llm.base import BaseLLMProvider, LLMMessage, LLMResponse
from wallet_assistant_ai.llm.router import LLMRouter

__all__ = [
    "BaseLLMProvider",
    "LLMMessage",
    "LLMResponse",
    "LLMRouter",
]
