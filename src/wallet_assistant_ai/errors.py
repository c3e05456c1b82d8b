"""Exception taxonomy for the wallet assistant.

Every error raised by the custody core derives from :class:`WalletError` so
that the chat layer can translate it into a user-facing reply. Messages are
written to be shown to the user as-is and never contain key material.
"""

from __future__ import annotations

from decimal import Decimal


class WalletError(Exception):
    """Base class for all recoverable wallet errors."""


class NoWalletError(WalletError):
    """The user has no custodial account yet."""

    def __init__(self, user_id: int | None = None) -> None:
        self.user_id = user_id
        super().__init__(
            "No wallet found. Create a new wallet with /create "
            "or connect an existing one with /connect."
        )


class InvalidKeyError(WalletError):
    """Supplied private key material is malformed."""

    def __init__(self, message: str = "Invalid private key.") -> None:
        super().__init__(message)


class EncryptionError(WalletError):
    """The vault could not encrypt or decrypt key material."""


class InvalidAmountError(WalletError):
    """An amount could not be parsed or is not representable for the asset."""


class InvalidAddressError(WalletError):
    """A destination is not a well-formed EVM address."""

    def __init__(self, address: str | None) -> None:
        self.address = address
        super().__init__(f"'{address}' is not a valid address.")


class ChainRpcError(WalletError):
    """Communication with the ledger failed or timed out."""


class NoPendingTransactionError(WalletError):
    """``confirm`` or ``cancel`` was issued with nothing pending."""

    def __init__(self, action: str = "confirm") -> None:
        self.action = action
        super().__init__(f"No pending transaction to {action}.")


class TransferFailedError(WalletError):
    """A broadcast was attempted but rejected or errored."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Transaction failed: {reason}")


class InsufficientFundsError(WalletError):
    """The account cannot cover a transfer.

    Three variants share this type, told apart by :attr:`kind`:

    ``"amount"``
        the transfer amount alone exceeds the balance,
    ``"amount_gas"``
        amount plus the estimated network fee exceeds the balance,
    ``"gas"``
        a token transfer whose fee cannot be paid from the native balance.

    Figures are human-readable decimals in units of :attr:`symbol`.
    """

    AMOUNT = "amount"
    AMOUNT_GAS = "amount_gas"
    GAS = "gas"

    def __init__(
        self,
        kind: str,
        symbol: str,
        requested: Decimal,
        available: Decimal,
        fee: Decimal | None = None,
        fee_symbol: str | None = None,
    ) -> None:
        self.kind = kind
        self.symbol = symbol
        self.requested = requested
        self.available = available
        self.fee = fee
        self.fee_symbol = fee_symbol or symbol
        super().__init__(self._build_message())

    @property
    def shortfall(self) -> Decimal:
        if self.kind == self.AMOUNT_GAS and self.fee is not None:
            return self.requested + self.fee - self.available
        if self.kind == self.GAS and self.fee is not None:
            return self.fee - self.available
        return self.requested - self.available

    def _build_message(self) -> str:
        if self.kind == self.AMOUNT_GAS:
            total = self.requested + (self.fee or Decimal(0))
            return (
                f"Insufficient funds for transaction + gas. "
                f"Need {total} {self.symbol} total "
                f"({self.requested} {self.symbol} + {self.fee} {self.symbol} gas). "
                f"Current balance: {self.available} {self.symbol}"
            )
        if self.kind == self.GAS:
            return (
                f"Insufficient {self.fee_symbol} to pay gas for sending "
                f"{self.requested} {self.symbol}. "
                f"Need {self.fee} {self.fee_symbol}, "
                f"available: {self.available} {self.fee_symbol}"
            )
        return (
            f"Insufficient funds for transfer amount. "
            f"Trying to send: {self.requested} {self.symbol}, "
            f"Available balance: {self.available} {self.symbol}"
        )


class TokenNotConfiguredError(WalletError):
    """The chain has no token contract address configured."""

    def __init__(self, symbol: str, chain_name: str) -> None:
        self.symbol = symbol
        self.chain_name = chain_name
        super().__init__(
            f"{symbol} is not configured on {chain_name}. "
            f"Set chain.token_address in config.yaml to enable it."
        )
