"""Chooses and builds the LLM backend named in the ``llm`` config section."""

from __future__ import annotations

import importlib
import logging

from wallet_assistant_ai.config import LLMConfig, LLMProviderConfig, has_unexpanded_placeholder
from wallet_assistant_ai.llm.base import BaseLLMProvider

logger = logging.getLogger("wallet_assistant_ai.llm.router")

# Loaded lazily so the SDKs stay optional.
_BACKENDS: dict[str, tuple[str, str]] = {
    "openai": ("wallet_assistant_ai.llm.openai", "OpenAIProvider"),
    "anthropic": ("wallet_assistant_ai.llm.anthropic", "AnthropicProvider"),
}


class LLMRouter:
    """Builds one provider per backend name and reuses it afterwards."""

    def __init__(self, llm_config: LLMConfig):
        self._config = llm_config
        self._built: dict[str, BaseLLMProvider] = {}

    def _settings_for(self, name: str) -> LLMProviderConfig:
        settings = getattr(self._config, name, None)
        if settings is None:
            configured = [b for b in _BACKENDS if getattr(self._config, b, None) is not None]
            raise ValueError(
                f"Provider '{name}' is not configured (configured: {configured or 'none'}). "
                f"Add an 'llm.{name}' section to config.yaml."
            )
        if not settings.api_key or has_unexpanded_placeholder(settings.api_key):
            raise ValueError(
                f"API key for provider '{name}' is empty or its environment "
                f"variable is not set."
            )
        if not settings.model:
            raise ValueError(f"No model specified for provider '{name}'.")
        return settings

    def get_provider(self, provider_name: str | None = None) -> BaseLLMProvider:
        """Return the provider *provider_name* (default: the configured one).

        Raises ``ValueError`` for unknown or incompletely configured
        providers and ``ImportError`` when the SDK is not installed.
        """
        name = provider_name or self._config.default_provider
        if name in self._built:
            return self._built[name]
        if name not in _BACKENDS:
            raise ValueError(f"Unknown provider '{name}'. Supported: {sorted(_BACKENDS)}")

        settings = self._settings_for(name)
        module_path, class_name = _BACKENDS[name]
        provider_cls = getattr(importlib.import_module(module_path), class_name)
        provider = provider_cls(
            api_key=settings.api_key,
            model=settings.model,
            base_url=settings.base_url,
            max_tokens=settings.max_tokens,
        )
        self._built[name] = provider
        logger.info(f"Intent extraction via {name} (model={settings.model})")
        return provider
