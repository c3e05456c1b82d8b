"""In-memory records held by the custody core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from wallet_assistant_ai.wallet.units import NATIVE_DECIMALS, from_smallest_unit


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Asset(str, Enum):
    NATIVE = "native"
    FUNGIBLE_TOKEN = "fungible_token"


@dataclass(frozen=True)
class EncryptedKey:
    """AES-256-CBC ciphertext of a raw private key and its iv."""

    iv: bytes
    ciphertext: bytes

    def __repr__(self) -> str:
        return f"EncryptedKey(iv={self.iv.hex()}, ciphertext=<{len(self.ciphertext)} bytes>)"


@dataclass(frozen=True)
class Account:
    """A custodial account held on behalf of one user."""

    user_id: int
    address: str
    encrypted_key: EncryptedKey
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class PendingTransaction:
    """A transfer staged for explicit confirmation."""

    user_id: int
    amount: Decimal
    asset: Asset
    to_address: str
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class TransferCost:
    """Point-in-time gas estimate for a specific transfer."""

    gas_limit: int
    gas_price: int

    @property
    def total_fee(self) -> int:
        return self.gas_limit * self.gas_price


@dataclass(frozen=True)
class Balances:
    """Both asset balances of an account, in smallest units.

    ``token`` is ``None`` when the chain has no token contract configured.
    """

    address: str
    native: int
    token: int | None = None
    token_decimals: int | None = None

    @property
    def native_amount(self) -> Decimal:
        return from_smallest_unit(self.native, NATIVE_DECIMALS)

    @property
    def token_amount(self) -> Decimal | None:
        if self.token is None or self.token_decimals is None:
            return None
        return from_smallest_unit(self.token, self.token_decimals)


@dataclass(frozen=True)
class TransferReceipt:
    """Outcome of a confirmed and broadcast transfer."""

    tx_hash: str
    amount: Decimal
    asset: Asset
    to_address: str
    explorer_url: str


@dataclass(frozen=True)
class IntentSubmission:
    """Result of staging a transfer; ``superseded`` is the entry it replaced."""

    pending: PendingTransaction
    superseded: PendingTransaction | None = None
