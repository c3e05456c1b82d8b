"""High-level wallet manager used by the chat assistant and the CLI.

Composes the vault, the account store, the pending-transfer ledger and the
chain gateway. Every per-user mutation runs inside that user's lock, and a
confirm removes the pending entry before it touches the network, so a
transfer can be broadcast at most once.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Awaitable, Callable

from wallet_assistant_ai.errors import (
    InsufficientFundsError,
    InvalidAmountError,
    NoPendingTransactionError,
    TokenNotConfiguredError,
    TransferFailedError,
)
from wallet_assistant_ai.wallet.locks import UserLocks
from wallet_assistant_ai.wallet.models import (
    Account,
    Asset,
    Balances,
    IntentSubmission,
    PendingTransaction,
    TransferReceipt,
)
from wallet_assistant_ai.wallet.pending import (
    DEFAULT_SWEEP_INTERVAL,
    DEFAULT_TTL,
    PendingTransactionLedger,
)
from wallet_assistant_ai.wallet.provider import BaseChainGateway, checksum
from wallet_assistant_ai.wallet.store import WalletStore
from wallet_assistant_ai.wallet.units import (
    MAX_UNIT_DIGITS,
    NATIVE_DECIMALS,
    from_smallest_unit,
    to_decimal,
    to_smallest_unit,
)
from wallet_assistant_ai.wallet.vault import CryptoVault

logger = logging.getLogger("wallet_assistant_ai.wallet.manager")


class WalletManager:
    """Orchestrates custody, balances and the confirm/cancel transfer flow.

    Parameters
    ----------
    gateway:
        Remote ledger access.
    vault:
        Encrypts keys at rest in memory.
    ttl:
        How long a staged transfer waits for ``confirm``.
    sweep_interval:
        Seconds between expiry sweeps.
    clock:
        Optional UTC clock shared with the ledger (for tests).
    """

    def __init__(
        self,
        gateway: BaseChainGateway,
        vault: CryptoVault,
        ttl: timedelta = DEFAULT_TTL,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.gateway = gateway
        self.locks = UserLocks()
        self.store = WalletStore(vault)
        ledger_kwargs = {"clock": clock} if clock is not None else {}
        self.ledger = PendingTransactionLedger(
            self.locks, ttl=ttl, sweep_interval=sweep_interval, **ledger_kwargs
        )

    @property
    def native_symbol(self) -> str:
        return self.gateway.chain.native_symbol

    @property
    def token_symbol(self) -> str:
        return self.gateway.chain.token_symbol

    @property
    def has_token(self) -> bool:
        return bool(self.gateway.chain.token_address)

    def symbol_for(self, asset: Asset) -> str:
        return self.native_symbol if asset is Asset.NATIVE else self.token_symbol

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start background work (the expiry sweeper). Needs a running loop."""
        self.ledger.start()

    async def shutdown(self) -> None:
        await self.ledger.stop()
        await self.gateway.close()

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def create_wallet(self, user_id: int) -> str:
        """Create a new custodial wallet, replacing any existing one."""
        async with self.locks.hold(user_id):
            return self.store.create(user_id)

    async def connect_wallet(self, user_id: int, key_material: str | bytes) -> str:
        """Import a private key, replacing any existing wallet."""
        async with self.locks.hold(user_id):
            return self.store.connect(user_id, key_material)

    def get_address(self, user_id: int) -> str | None:
        return self.store.address_of(user_id)

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    async def get_balances(self, user_id: int) -> Balances:
        """Fetch native and token balances concurrently.

        Only the native balance is read when no token contract is configured.
        """
        account = self.store.require(user_id)
        if not self.has_token:
            native = await self.gateway.get_native_balance(account.address)
            return Balances(address=account.address, native=native)
        native, token, decimals = await asyncio.gather(
            self.gateway.get_native_balance(account.address),
            self.gateway.get_token_balance(account.address),
            self.gateway.get_token_decimals(),
        )
        return Balances(
            address=account.address,
            native=native,
            token=token,
            token_decimals=decimals,
        )

    # ------------------------------------------------------------------
    # Transfer flow
    # ------------------------------------------------------------------

    async def submit_transfer_intent(
        self,
        user_id: int,
        amount: Decimal | str | int,
        asset: Asset,
        to_address: str,
    ) -> IntentSubmission:
        """Stage a transfer for confirmation.

        A transfer already pending for the user is superseded and returned
        in :attr:`IntentSubmission.superseded`.
        """
        value = to_decimal(amount)
        if value <= 0:
            raise InvalidAmountError("Amount must be greater than zero.")
        if value.adjusted() >= MAX_UNIT_DIGITS:
            raise InvalidAmountError(f"{value} is too large.")
        if asset is Asset.NATIVE:
            to_smallest_unit(value, NATIVE_DECIMALS)
        elif not self.has_token:
            raise TokenNotConfiguredError(self.token_symbol, self.gateway.chain.name)
        destination = checksum(to_address)

        async with self.locks.hold(user_id):
            self.store.require(user_id)
            pending = PendingTransaction(
                user_id=user_id,
                amount=value,
                asset=asset,
                to_address=destination,
                created_at=self.ledger.now(),
            )
            superseded = self.ledger.put(user_id, pending)

        logger.info(
            f"Transfer staged for user {user_id}: {value} {self.symbol_for(asset)} "
            f"to {destination}"
        )
        return IntentSubmission(pending=pending, superseded=superseded)

    async def cancel_pending(self, user_id: int) -> PendingTransaction:
        async with self.locks.hold(user_id):
            pending = self.ledger.remove(user_id)
        if pending is None:
            raise NoPendingTransactionError("cancel")
        logger.info(f"Pending transfer cancelled by user {user_id}")
        return pending

    def get_pending(self, user_id: int) -> PendingTransaction | None:
        return self.ledger.peek(user_id)

    async def confirm_pending(self, user_id: int) -> TransferReceipt:
        """Validate and broadcast the user's pending transfer.

        The pending entry is consumed whatever the outcome; a failed
        transfer has to be submitted again.
        """
        async with self.locks.hold(user_id):
            pending = self.ledger.take(user_id)
            if pending is None:
                raise NoPendingTransactionError()
            account = self.store.require(user_id)

            if pending.asset is Asset.NATIVE:
                tx_hash = await self._confirm_native(account, pending)
            else:
                tx_hash = await self._confirm_token(account, pending)

        logger.info(
            f"Transfer sent for user {user_id}: {pending.amount} "
            f"{self.symbol_for(pending.asset)} to {pending.to_address} (tx={tx_hash})"
        )
        return TransferReceipt(
            tx_hash=tx_hash,
            amount=pending.amount,
            asset=pending.asset,
            to_address=pending.to_address,
            explorer_url=self.gateway.chain.tx_url(tx_hash),
        )

    async def _confirm_native(self, account: Account, pending: PendingTransaction) -> str:
        symbol = self.native_symbol
        amount = to_smallest_unit(pending.amount, NATIVE_DECIMALS)
        balance = await self.gateway.get_native_balance(account.address)
        available = from_smallest_unit(balance, NATIVE_DECIMALS)

        if amount > balance:
            raise InsufficientFundsError(
                InsufficientFundsError.AMOUNT, symbol, pending.amount, available
            )

        cost = await self.gateway.estimate_transfer_cost(
            account.address, pending.to_address, amount
        )
        total = amount + cost.total_fee
        logger.debug(
            f"amount={amount} gas_limit={cost.gas_limit} gas_price={cost.gas_price} "
            f"total={total} balance={balance}"
        )
        if balance < total:
            raise InsufficientFundsError(
                InsufficientFundsError.AMOUNT_GAS,
                symbol,
                pending.amount,
                available,
                fee=from_smallest_unit(cost.total_fee, NATIVE_DECIMALS),
            )

        return await self._sign_and_send(
            account,
            lambda key: self.gateway.send_native(
                key, pending.to_address, amount, cost.gas_limit, cost.gas_price
            ),
        )

    async def _confirm_token(self, account: Account, pending: PendingTransaction) -> str:
        symbol = self.token_symbol
        balance, decimals = await asyncio.gather(
            self.gateway.get_token_balance(account.address),
            self.gateway.get_token_decimals(),
        )
        amount = to_smallest_unit(pending.amount, decimals)
        if amount > balance:
            raise InsufficientFundsError(
                InsufficientFundsError.AMOUNT,
                symbol,
                pending.amount,
                from_smallest_unit(balance, decimals),
            )

        # Token transfers pay gas in the native asset.
        cost = await self.gateway.estimate_token_transfer_cost(
            account.address, pending.to_address, amount
        )
        native_balance = await self.gateway.get_native_balance(account.address)
        if native_balance < cost.total_fee:
            raise InsufficientFundsError(
                InsufficientFundsError.GAS,
                symbol,
                pending.amount,
                from_smallest_unit(native_balance, NATIVE_DECIMALS),
                fee=from_smallest_unit(cost.total_fee, NATIVE_DECIMALS),
                fee_symbol=self.native_symbol,
            )

        return await self._sign_and_send(
            account,
            lambda key: self.gateway.send_token(
                key, pending.to_address, amount, cost.gas_limit, cost.gas_price
            ),
        )

    async def _sign_and_send(
        self,
        account: Account,
        send: Callable[[bytes], Awaitable[str]],
    ) -> str:
        """Unlock the key and broadcast, translating any failure."""
        try:
            key = self.store.unlock(account)
            return await send(key)
        except Exception as exc:
            reason = str(exc) or exc.__class__.__name__
            logger.error(f"Broadcast from {account.address} failed: {reason}")
            raise TransferFailedError(reason) from exc
