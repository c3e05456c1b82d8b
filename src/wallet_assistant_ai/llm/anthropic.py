"""Anthropic Messages backend for intent extraction."""

from __future__ import annotations

import logging

from wallet_assistant_ai.llm.base import BaseLLMProvider, LLMMessage, LLMResponse

logger = logging.getLogger("wallet_assistant_ai.llm.anthropic")

_JSON_INSTRUCTION = "Respond with a single JSON object and nothing else."
_JSON_PREFILL = "{"


class AnthropicProvider(BaseLLMProvider):
    """Messages API via :class:`anthropic.AsyncAnthropic`.

    The Messages API has no JSON response mode; ``json_mode`` adds an
    instruction to the system prompt and prefills the reply with ``{``.
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
            from anthropic import AsyncAnthropic
        except ImportError as exc:
            raise ImportError(
                "Intent extraction with Anthropic needs the 'anthropic' package: "
                "pip install 'wallet-assistant-ai[anthropic]'"
            ) from exc
        self._client = AsyncAnthropic(api_key=self.api_key, base_url=self.base_url or None)

    @staticmethod
    def split_system(messages: list[LLMMessage]) -> tuple[str, list[dict]]:
        """Return the joined system text and the remaining turns as dicts."""
        system = "\n".join(m.content for m in messages if m.role == "system")
        turns = [{"role": m.role, "content": m.content} for m in messages if m.role != "system"]
        return system, turns

    async def complete(
        self,
        messages: list[LLMMessage],
        json_mode: bool = False,
    ) -> LLMResponse:
        system, turns = self.split_system(messages)
        if json_mode:
            system = "\n".join(part for part in (system, _JSON_INSTRUCTION) if part)
            turns.append({"role": "assistant", "content": _JSON_PREFILL})

        request: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": 0,
            "messages": turns,
        }
        if system:
            request["system"] = system

        try:
            reply = await self._client.messages.create(**request)
        except Exception as exc:
            logger.error(f"Anthropic request ({self.model}) failed: {exc}")
            raise

        text = "".join(b.text for b in reply.content if getattr(b, "type", None) == "text")
        if json_mode:
            text = _JSON_PREFILL + text
        usage = reply.usage
        return LLMResponse(
            content=text,
            usage=(
                {"input_tokens": usage.input_tokens, "output_tokens": usage.output_tokens}
                if usage
                else None
            ),
            stop_reason=reply.stop_reason,
        )
