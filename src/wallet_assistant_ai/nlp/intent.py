"""Validated intent record handed from the parser to the wallet core.

Upstream text (from a command, the rule-based matcher or an LLM) is cleaned
here and nowhere else: unit labels are stripped from amounts, token names
are mapped to an :class:`Asset`, and anything that is not a positive finite
number is rejected.
"""

from __future__ import annotations

import re
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from wallet_assistant_ai.wallet.models import Asset
from wallet_assistant_ai.wallet.units import MAX_UNIT_DIGITS


class IntentKind(str, Enum):
    TRANSFER = "TRANSFER"
    CHECK_BALANCE = "CHECK_BALANCE"
    GET_ADDRESS = "GET_ADDRESS"
    CONNECT = "CONNECT"
    CREATE = "CREATE"
    INFO = "INFO"
    UNKNOWN = "UNKNOWN"


_UNIT_LABEL_RE = re.compile(
    r"(?<![a-z])(?:mnt|usdt|eth|native|fungible(?:_token)?|tokens?|coins?)(?![a-z])",
    re.IGNORECASE,
)

# Plain decimal notation only; exponents like "1e9" are refused.
_PLAIN_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")

_TOKEN_ALIASES: dict[str, Asset] = {
    "NATIVE": Asset.NATIVE,
    "MNT": Asset.NATIVE,
    "ETH": Asset.NATIVE,
    "FUNGIBLE": Asset.FUNGIBLE_TOKEN,
    "FUNGIBLE_TOKEN": Asset.FUNGIBLE_TOKEN,
    "TOKEN": Asset.FUNGIBLE_TOKEN,
    "USDT": Asset.FUNGIBLE_TOKEN,
}


def parse_amount(raw: Any) -> Decimal | None:
    """Turn an upstream amount into a positive ``Decimal``.

    ``None`` and blank strings mean "no amount given". Raises ``ValueError``
    for anything else that is not a positive finite number.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError("amount must be a number")
    if isinstance(raw, (int, Decimal)):
        value = Decimal(raw)
    elif isinstance(raw, float):
        # JSON numbers arrive as floats; their shortest repr is what the
        # model actually wrote.
        value = Decimal(repr(raw))
    elif isinstance(raw, str):
        cleaned = _UNIT_LABEL_RE.sub("", raw).replace(",", "").strip()
        if not cleaned:
            return None
        if not _PLAIN_NUMBER_RE.fullmatch(cleaned):
            raise ValueError(f"'{raw}' is not a number")
        value = Decimal(cleaned)
    else:
        raise ValueError(f"unsupported amount type {type(raw).__name__}")

    if not value.is_finite() or value <= 0:
        raise ValueError(f"'{raw}' is not a positive amount")
    if value.adjusted() >= MAX_UNIT_DIGITS:
        raise ValueError(f"'{raw}' is too large")
    return value


def parse_token(raw: Any) -> Asset:
    """Map a token label to an :class:`Asset`; missing means native."""
    if raw is None or isinstance(raw, Asset):
        return raw or Asset.NATIVE
    label = str(raw).strip().upper()
    if not label:
        return Asset.NATIVE
    try:
        return _TOKEN_ALIASES[label]
    except KeyError:
        try:
            return Asset(label.lower())
        except ValueError:
            raise ValueError(f"unsupported token '{raw}'") from None


class ResolvedIntent(BaseModel):
    """What the user asked for, with every field already validated."""

    kind: IntentKind = IntentKind.UNKNOWN
    amount: Optional[Decimal] = None
    token: Asset = Asset.NATIVE
    to: Optional[str] = None
    info: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, value: Any) -> IntentKind:
        if isinstance(value, IntentKind):
            return value
        try:
            return IntentKind(str(value or "").strip().upper())
        except ValueError:
            return IntentKind.UNKNOWN

    @field_validator("amount", mode="before")
    @classmethod
    def clean_amount(cls, value: Any) -> Decimal | None:
        return parse_amount(value)

    @field_validator("token", mode="before")
    @classmethod
    def clean_token(cls, value: Any) -> Asset:
        return parse_token(value)

    @field_validator("to", "info", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ResolvedIntent":
        """Build from a loosely keyed dict such as an LLM's JSON reply."""
        lowered = {str(k).lower(): v for k, v in payload.items()}
        return cls.model_validate(
            {
                "kind": lowered.get("intent", lowered.get("kind")),
                "amount": lowered.get("amount"),
                "token": lowered.get("token"),
                "to": lowered.get("to"),
                "info": lowered.get("info"),
            }
        )

    @property
    def is_complete_transfer(self) -> bool:
        return self.kind is IntentKind.TRANSFER and self.amount is not None and bool(self.to)
