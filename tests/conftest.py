"""
Pytest configuration and shared fixtures for wallet-assistant-ai tests.
"""
from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from wallet_assistant_ai.errors import ChainRpcError, TokenNotConfiguredError
from wallet_assistant_ai.wallet.chains import Chain
from wallet_assistant_ai.wallet.models import TransferCost
from wallet_assistant_ai.wallet.provider import BaseChainGateway
from wallet_assistant_ai.wallet.vault import CryptoVault

TEST_SECRET = "11" * 32
RECIPIENT = "0x000000000000000000000000000000000000dEaD"
# Well-known throwaway key (hardhat account #0); never holds real funds.
KNOWN_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
KNOWN_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

TEST_CHAIN = Chain(
    name="testnet",
    chain_id=31337,
    rpc_url="http://localhost:8545",
    native_symbol="MNT",
    explorer_url="https://explorer.example",
    token_address="0x201EBa5CC46D216Ce6DC03F6a759e8E766e956aE",
    token_symbol="USDT",
)

NO_TOKEN_CHAIN = replace(TEST_CHAIN, name="tokenless", token_address=None)

ONE = 10**18


class FakeGateway(BaseChainGateway):
    """In-memory ledger used in place of a real RPC endpoint."""

    def __init__(
        self,
        native: int = 0,
        token: int = 0,
        token_decimals: int = 6,
        gas_limit: int = 21_000,
        gas_price: int = 1,
        token_gas_limit: int = 65_000,
        chain: Chain = TEST_CHAIN,
    ) -> None:
        super().__init__(chain)
        self.native_balances: dict[str, int] = {}
        self.token_balances: dict[str, int] = {}
        self.default_native = native
        self.default_token = token
        self.token_decimals = token_decimals
        self.gas_limit = gas_limit
        self.gas_price = gas_price
        self.token_gas_limit = token_gas_limit
        self.sent: list[dict] = []
        self.send_delay = 0.0
        self.fail_with: Exception | None = None
        self.closed = False

    async def get_native_balance(self, address: str) -> int:
        return self.native_balances.get(address, self.default_native)

    def _require_token(self) -> None:
        if not self.chain.token_address:
            raise TokenNotConfiguredError(self.chain.token_symbol, self.chain.name)

    async def get_token_balance(self, address: str) -> int:
        self._require_token()
        return self.token_balances.get(address, self.default_token)

    async def get_token_decimals(self) -> int:
        self._require_token()
        return self.token_decimals

    async def estimate_transfer_cost(self, from_address, to_address, amount) -> TransferCost:
        return TransferCost(gas_limit=self.gas_limit, gas_price=self.gas_price)

    async def estimate_token_transfer_cost(self, from_address, to_address, amount) -> TransferCost:
        return TransferCost(gas_limit=self.token_gas_limit, gas_price=self.gas_price)

    async def _record(self, **tx) -> str:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(tx)
        return "0x" + f"{len(self.sent):064x}"

    async def send_native(self, signer_key, to_address, amount, gas_limit, gas_price) -> str:
        return await self._record(
            kind="native",
            key=signer_key,
            to=to_address,
            amount=amount,
            gas_limit=gas_limit,
            gas_price=gas_price,
        )

    async def send_token(self, signer_key, to_address, amount, gas_limit=None, gas_price=None) -> str:
        return await self._record(
            kind="token",
            key=signer_key,
            to=to_address,
            amount=amount,
            gas_limit=gas_limit,
            gas_price=gas_price,
        )

    async def close(self) -> None:
        self.closed = True


class UnreachableGateway(FakeGateway):
    """Gateway whose every read fails like a dead RPC endpoint."""

    async def get_native_balance(self, address: str) -> int:
        raise ChainRpcError("get_balance timed out after 30s")


class FrozenClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def vault() -> CryptoVault:
    return CryptoVault(TEST_SECRET)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()
