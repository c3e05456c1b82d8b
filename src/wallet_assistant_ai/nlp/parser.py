"""Maps free chat text to a :class:`ResolvedIntent`.

An LLM is asked first when one is configured; if it fails or answers with
something unusable, a keyword matcher takes over so the assistant keeps
working without a model.
"""

from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError

from wallet_assistant_ai.llm.base import BaseLLMProvider, LLMMessage
from wallet_assistant_ai.nlp.intent import IntentKind, ResolvedIntent
from wallet_assistant_ai.wallet.models import Asset

logger = logging.getLogger("wallet_assistant_ai.nlp.parser")

_WORD_RE = re.compile(r"[a-z]+")
_AMOUNT_RE = re.compile(r"(?<![\w.])(\d+(?:\.\d+)?)(?![\w.])")
_ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")

DEFAULT_INFO = (
    "Mantle is a high-performance Ethereum Layer 2 network. "
    "For more specific questions, please ask!"
)


def build_system_prompt(native_symbol: str, token_symbol: str) -> str:
    return (
        f"You are a crypto wallet assistant for the Mantle network. You parse the "
        f"user's intent and answer questions about Mantle.\n"
        f"Return JSON only, with exactly these keys: "
        f'{{"Intent", "amount", "token", "to", "info"}}.\n'
        f'- Intent: one of "TRANSFER", "CHECK_BALANCE", "GET_ADDRESS", "INFO", '
        f'"CONNECT", "CREATE", "UNKNOWN".\n'
        f'- amount: the number only, e.g. "1" not "1 {token_symbol}".\n'
        f'- token: exactly "{native_symbol}" or "{token_symbol}".\n'
        f"- to: the recipient address, if any.\n"
        f"- info: for INFO, a short answer to the user's question."
    )


class IntentParser:
    """Turns a chat message into a validated intent.

    Parameters
    ----------
    provider:
        Optional LLM backend. ``None`` means keyword matching only.
    native_symbol, token_symbol:
        Ticker symbols the user is expected to type.
    """

    def __init__(
        self,
        provider: BaseLLMProvider | None = None,
        native_symbol: str = "MNT",
        token_symbol: str = "USDT",
    ) -> None:
        self.provider = provider
        self.native_symbol = native_symbol
        self.token_symbol = token_symbol
        self._system_prompt = build_system_prompt(native_symbol, token_symbol)

    async def parse(self, text: str) -> ResolvedIntent:
        if self.provider is not None:
            try:
                return await self._parse_with_llm(text)
            except (ValidationError, ValueError) as e:
                logger.warning(f"Unusable LLM intent, falling back to keywords: {e}")
            except Exception as e:
                logger.warning(f"LLM intent extraction failed, falling back to keywords: {e}")
        return self.basic_intent_recognition(text)

    async def _parse_with_llm(self, text: str) -> ResolvedIntent:
        response = await self.provider.complete(
            [
                LLMMessage(role="system", content=self._system_prompt),
                LLMMessage(role="user", content=text),
            ],
            json_mode=True,
        )
        payload = json.loads(response.content)
        if not isinstance(payload, dict):
            raise ValueError("LLM reply is not a JSON object")
        intent = ResolvedIntent.from_payload(payload)
        logger.debug(f"LLM intent: {intent.kind.value}")
        return intent

    # ------------------------------------------------------------------
    # Keyword fallback
    # ------------------------------------------------------------------

    def basic_intent_recognition(self, text: str) -> ResolvedIntent:
        words = set(_WORD_RE.findall(text.lower()))

        if words & {"send", "transfer", "pay"}:
            return self.parse_transfer_intent(text)
        if words & {"connect", "import", "link"}:
            return ResolvedIntent(kind=IntentKind.CONNECT)
        if words & {"create", "new", "generate"}:
            return ResolvedIntent(kind=IntentKind.CREATE)
        if words & {"balance", "check"}:
            return ResolvedIntent(kind=IntentKind.CHECK_BALANCE)
        if words & {"address", "wallet"}:
            return ResolvedIntent(kind=IntentKind.GET_ADDRESS)
        if words & {"mantle", "network", "chain"}:
            return ResolvedIntent(kind=IntentKind.INFO, info=DEFAULT_INFO)
        return ResolvedIntent(kind=IntentKind.UNKNOWN)

    def parse_transfer_intent(self, text: str) -> ResolvedIntent:
        """Pull amount, token and recipient out of a transfer request."""
        # Drop the address first so its hex digits are not read as an amount.
        address_match = _ADDRESS_RE.search(text)
        remainder = _ADDRESS_RE.sub(" ", text)
        amount_match = _AMOUNT_RE.search(remainder)

        words = set(_WORD_RE.findall(remainder.lower()))
        token = Asset.NATIVE
        if self.token_symbol.lower() in words:
            token = Asset.FUNGIBLE_TOKEN

        to = address_match.group(0) if address_match else None
        try:
            return ResolvedIntent(
                kind=IntentKind.TRANSFER,
                amount=amount_match.group(1) if amount_match else None,
                token=token,
                to=to,
            )
        except ValidationError:
            # e.g. "send 0 MNT": keep the transfer intent, drop the amount
            return ResolvedIntent(kind=IntentKind.TRANSFER, token=token, to=to)
