"""Intent extraction: chat text in, validated :class:`ResolvedIntent` out."""

from wallet_assistant_ai.nlp.intent import IntentKind, ResolvedIntent
from wallet_assistant_ai.nlp.parser import IntentParser

__all__ = ["IntentKind", "IntentParser", "ResolvedIntent"]
