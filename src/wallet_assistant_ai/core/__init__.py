"""Chat-facing assistant."""

from wallet_assistant_ai.core.assistant import WalletAssistant

__all__ = ["WalletAssistant"]
