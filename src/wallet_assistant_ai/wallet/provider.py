"""Chain gateway: balances, fee estimation and broadcast over JSON-RPC."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, TypeVar

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.middleware import ExtraDataToPOAMiddleware

from wallet_assistant_ai.errors import ChainRpcError, InvalidAddressError, TokenNotConfiguredError
from wallet_assistant_ai.wallet.chains import Chain
from wallet_assistant_ai.wallet.models import TransferCost

logger = logging.getLogger("wallet_assistant_ai.wallet.provider")

T = TypeVar("T")

ERC20_ABI: list[dict] = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "name": "transfer",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]


def checksum(address: str) -> str:
    """Return the checksummed form of *address* or raise ``InvalidAddressError``."""
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidAddressError(address)
    return Web3.to_checksum_address(address)


class BaseChainGateway(ABC):
    """Remote ledger operations needed by the orchestrator.

    All amounts are integers in the asset's smallest unit. Implementations
    raise :class:`ChainRpcError` for any communication failure and must not
    retry broadcasts on their own.
    """

    def __init__(self, chain: Chain) -> None:
        self.chain = chain

    @abstractmethod
    async def get_native_balance(self, address: str) -> int: ...

    @abstractmethod
    async def get_token_balance(self, address: str) -> int: ...

    @abstractmethod
    async def get_token_decimals(self) -> int: ...

    @abstractmethod
    async def estimate_transfer_cost(
        self, from_address: str, to_address: str, amount: int
    ) -> TransferCost: ...

    @abstractmethod
    async def estimate_token_transfer_cost(
        self, from_address: str, to_address: str, amount: int
    ) -> TransferCost: ...

    @abstractmethod
    async def send_native(
        self,
        signer_key: bytes,
        to_address: str,
        amount: int,
        gas_limit: int,
        gas_price: int,
    ) -> str: ...

    @abstractmethod
    async def send_token(
        self,
        signer_key: bytes,
        to_address: str,
        amount: int,
        gas_limit: int | None = None,
        gas_price: int | None = None,
    ) -> str: ...

    async def close(self) -> None:
        """Release network resources."""


class Web3Gateway(BaseChainGateway):
    """:class:`BaseChainGateway` backed by ``web3``'s async client.

    Injects the POA middleware on every chain but Ethereum mainnet and
    bounds each RPC round trip by *timeout* seconds.
    """

    def __init__(self, chain: Chain, timeout: float = 30.0) -> None:
        super().__init__(chain)
        self.timeout = timeout
        self._w3 = AsyncWeb3(AsyncHTTPProvider(chain.rpc_url))
        if chain.chain_id != 1:
            self._w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self._token = None
        if chain.token_address:
            self._token = self._w3.eth.contract(
                address=Web3.to_checksum_address(chain.token_address),
                abi=ERC20_ABI,
            )
        self._token_decimals: int | None = None

    async def _call(self, what: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning(f"RPC {what} on {self.chain.name} timed out after {self.timeout}s")
            raise ChainRpcError(f"{what} timed out after {self.timeout:g}s") from exc
        except Exception as exc:
            logger.warning(f"RPC {what} on {self.chain.name} failed: {exc}")
            raise ChainRpcError(f"{what} failed: {exc}") from exc

    def _require_token(self) -> Any:
        if self._token is None:
            raise TokenNotConfiguredError(self.chain.token_symbol, self.chain.name)
        return self._token

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_native_balance(self, address: str) -> int:
        return await self._call("get_balance", self._w3.eth.get_balance(checksum(address)))

    async def get_token_balance(self, address: str) -> int:
        token = self._require_token()
        return await self._call(
            "balanceOf", token.functions.balanceOf(checksum(address)).call()
        )

    async def get_token_decimals(self) -> int:
        if self._token_decimals is None:
            token = self._require_token()
            self._token_decimals = int(
                await self._call("decimals", token.functions.decimals().call())
            )
        return self._token_decimals

    # ------------------------------------------------------------------
    # Fee estimation
    # ------------------------------------------------------------------

    async def estimate_transfer_cost(
        self, from_address: str, to_address: str, amount: int
    ) -> TransferCost:
        gas_price = await self._call("gas_price", self._w3.eth.gas_price)
        gas_limit = await self._call(
            "estimate_gas",
            self._w3.eth.estimate_gas(
                {
                    "from": checksum(from_address),
                    "to": checksum(to_address),
                    "value": amount,
                }
            ),
        )
        return TransferCost(gas_limit=int(gas_limit), gas_price=int(gas_price))

    async def estimate_token_transfer_cost(
        self, from_address: str, to_address: str, amount: int
    ) -> TransferCost:
        token = self._require_token()
        gas_price = await self._call("gas_price", self._w3.eth.gas_price)
        gas_limit = await self._call(
            "estimate_gas",
            token.functions.transfer(checksum(to_address), amount).estimate_gas(
                {"from": checksum(from_address)}
            ),
        )
        return TransferCost(gas_limit=int(gas_limit), gas_price=int(gas_price))

    # ------------------------------------------------------------------
    # Broadcast
    # ------------------------------------------------------------------

    async def _broadcast(self, tx: dict, signer_key: bytes) -> str:
        signed = self._w3.eth.account.sign_transaction(tx, signer_key)
        tx_hash = await self._call(
            "send_raw_transaction", self._w3.eth.send_raw_transaction(signed.raw_transaction)
        )
        return Web3.to_hex(tx_hash)

    async def send_native(
        self,
        signer_key: bytes,
        to_address: str,
        amount: int,
        gas_limit: int,
        gas_price: int,
    ) -> str:
        sender = self._w3.eth.account.from_key(signer_key).address
        nonce = await self._call(
            "get_transaction_count", self._w3.eth.get_transaction_count(sender, "pending")
        )
        tx = {
            "to": checksum(to_address),
            "value": amount,
            "nonce": nonce,
            "gas": gas_limit,
            "gasPrice": gas_price,
            "chainId": self.chain.chain_id,
        }
        tx_hash = await self._broadcast(tx, signer_key)
        logger.info(f"Native transfer broadcast on {self.chain.name}: {tx_hash}")
        return tx_hash

    async def send_token(
        self,
        signer_key: bytes,
        to_address: str,
        amount: int,
        gas_limit: int | None = None,
        gas_price: int | None = None,
    ) -> str:
        token = self._require_token()
        sender = self._w3.eth.account.from_key(signer_key).address
        if gas_limit is None or gas_price is None:
            cost = await self.estimate_token_transfer_cost(sender, to_address, amount)
            gas_limit, gas_price = cost.gas_limit, cost.gas_price
        nonce = await self._call(
            "get_transaction_count", self._w3.eth.get_transaction_count(sender, "pending")
        )
        tx = await self._call(
            "build_transaction",
            token.functions.transfer(checksum(to_address), amount).build_transaction(
                {
                    "from": sender,
                    "nonce": nonce,
                    "gas": gas_limit,
                    "gasPrice": gas_price,
                    "chainId": self.chain.chain_id,
                }
            ),
        )
        tx_hash = await self._broadcast(tx, signer_key)
        logger.info(f"{self.chain.token_symbol} transfer broadcast on {self.chain.name}: {tx_hash}")
        return tx_hash

    async def close(self) -> None:
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
