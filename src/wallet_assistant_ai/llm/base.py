"""Provider-neutral message types and the provider base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LLMMessage:
    role: str  # 'system', 'user' or 'assistant'
    content: str


@dataclass
class LLMResponse:
    content: str
    usage: dict[str, int] | None = None
    stop_reason: str | None = None


class BaseLLMProvider(ABC):
    """Common constructor and interface for all providers."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 512,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_tokens = max_tokens

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        json_mode: bool = False,
    ) -> LLMResponse:
        """Return one completion for *messages*.

        With *json_mode* the provider asks the model for a single JSON
        object as its whole reply.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"
