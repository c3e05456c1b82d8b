"""OpenAI-compatible chat backend for intent extraction."""

from __future__ import annotations

import logging

from wallet_assistant_ai.llm.base import BaseLLMProvider, LLMMessage, LLMResponse

logger = logging.getLogger("wallet_assistant_ai.llm.openai")


class OpenAIProvider(BaseLLMProvider):
    """Chat Completions via :class:`openai.AsyncOpenAI`.

    ``base_url`` lets the same class talk to any OpenAI-compatible server.
    Intent extraction wants repeatable answers, so requests run at
    temperature 0.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 512,
    ):
        super().__init__(api_key=api_key, model=model, base_url=base_url, max_tokens=max_tokens)
        try:
            from openai import AsyncOpenAI
        except ImportError as exc:
            raise ImportError(
                "Intent extraction with OpenAI needs the 'openai' package: "
                "pip install 'wallet-assistant-ai[openai]'"
            ) from exc
        self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url or None)

    async def complete(
        self,
        messages: list[LLMMessage],
        json_mode: bool = False,
    ) -> LLMResponse:
        request: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": 0,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            completion = await self._client.chat.completions.create(**request)
        except Exception as exc:
            logger.error(f"OpenAI request ({self.model}) failed: {exc}")
            raise

        first = completion.choices[0]
        usage = completion.usage
        return LLMResponse(
            content=first.message.content or "",
            usage=(
                {"input_tokens": usage.prompt_tokens, "output_tokens": usage.completion_tokens}
                if usage
                else None
            ),
            stop_reason=first.finish_reason,
        )
