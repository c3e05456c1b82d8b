"""Configuration system for Wallet Assistant AI.

Loads the assistant config from `.wallet-assistant-ai/config.yaml` and
supports environment variable expansion so secrets such as the encryption
key and API keys can stay out of the file.
"""

from __future__ import annotations

import os
import re
from dataclasses import replace
from datetime import timedelta
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from wallet_assistant_ai.wallet.chains import CHAINS, Chain


# ---------------------------------------------------------------------------
# ${VAR} expansion
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    Unset variables keep their placeholder, which the LLM router and the
    vault reject with a clear message.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    """Expand placeholders in every string of a parsed YAML document."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


def has_unexpanded_placeholder(value: str) -> bool:
    return bool(_ENV_VAR_RE.search(value))


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class LLMProviderConfig(BaseModel):
    """Credentials and model for one intent-extraction backend."""

    api_key: str = ""
    model: str = ""
    base_url: Optional[str] = None  # OpenAI-compatible servers only
    max_tokens: int = 512


class LLMConfig(BaseModel):
    """Intent extraction backend. Disabled means rule-based parsing only."""

    enabled: bool = False
    default_provider: str = "openai"
    anthropic: Optional[LLMProviderConfig] = None
    openai: Optional[LLMProviderConfig] = None


class ChainConfig(BaseModel):
    """Network settings. Unset fields fall back to the named preset."""

    name: str = "mantle-sepolia"
    rpc_url: Optional[str] = None
    chain_id: Optional[int] = None
    native_symbol: Optional[str] = None
    explorer_url: Optional[str] = None
    token_address: Optional[str] = None
    token_symbol: Optional[str] = None
    rpc_timeout_seconds: float = 30.0

    def resolve(self) -> Chain:
        """Merge this config over the preset of the same name.

        Raises ``ValueError`` if the chain is not a preset and lacks the
        fields needed to talk to it.
        """
        overrides: dict = {}
        for key in (
            "rpc_url",
            "chain_id",
            "native_symbol",
            "explorer_url",
            "token_address",
            "token_symbol",
        ):
            value = getattr(self, key)
            if isinstance(value, str) and has_unexpanded_placeholder(value):
                continue
            if value not in (None, ""):
                overrides[key] = value
        preset = CHAINS.get(self.name)
        if preset is not None:
            return replace(preset, **overrides)

        missing = [k for k in ("rpc_url", "chain_id", "native_symbol", "explorer_url") if k not in overrides]
        if missing:
            raise ValueError(
                f"Chain '{self.name}' is not a preset; set {', '.join(missing)} "
                f"in the chain section."
            )
        return Chain(name=self.name, **overrides)


class VaultConfig(BaseModel):
    """Key encryption settings."""

    encryption_key: str = "${ENCRYPTION_KEY}"  # 64 hex chars, 256-bit


class PendingConfig(BaseModel):
    """Limits for staged transfers."""

    ttl_seconds: int = 300          # confirm window
    sweep_interval_seconds: int = 60

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)


class AssistantConfig(BaseModel):
    """Root configuration object."""

    name: str = "Wallet Assistant"
    chain: ChainConfig = Field(default_factory=ChainConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    pending: PendingConfig = Field(default_factory=PendingConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def get_root_dir(base: Path | None = None) -> Path:
    """Return the ``.wallet-assistant-ai/`` directory (no auto-create).

    Parameters
    ----------
    base:
        Parent directory that contains (or will contain) the root folder.
        Defaults to the current working directory.
    """
    if base is None:
        base = Path.cwd()
    return base / ".wallet-assistant-ai"


def get_config_path(base: Path | None = None) -> Path:
    return get_root_dir(base) / "config.yaml"


def load_config(path: Path) -> AssistantConfig:
    """Load and validate the configuration from a YAML file.

    Environment variable placeholders (``${VAR}``) are expanded before
    validation.
    """
    raw_text = path.read_text(encoding="utf-8")
    raw_data = yaml.safe_load(raw_text) or {}
    expanded = _expand_env_recursive(raw_data)
    return AssistantConfig.model_validate(expanded)


def save_config(config: AssistantConfig, path: Path) -> None:
    """Serialize an :class:`AssistantConfig` to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
