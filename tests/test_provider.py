"""
Tests for Web3Gateway with the web3 client stubbed out.
"""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from wallet_assistant_ai.errors import ChainRpcError, InvalidAddressError, TokenNotConfiguredError
from wallet_assistant_ai.wallet.models import TransferCost
from wallet_assistant_ai.wallet.provider import Web3Gateway, checksum

from conftest import KNOWN_ADDRESS, NO_TOKEN_CHAIN, RECIPIENT, TEST_CHAIN

SIGNER_KEY = b"\x01" * 32


async def _never(*args, **kwargs):
    await asyncio.Event().wait()


@pytest.fixture
def web3_gateway() -> Web3Gateway:
    gateway = Web3Gateway(TEST_CHAIN, timeout=0.05)
    gateway._w3 = MagicMock()
    gateway._w3.eth.account.from_key.return_value.address = KNOWN_ADDRESS
    gateway._w3.eth.get_transaction_count = AsyncMock(return_value=7)
    gateway._w3.eth.send_raw_transaction = AsyncMock(return_value=b"\x12\x34")
    gateway._token = MagicMock()
    return gateway


class TestChecksum:
    """Tests for address normalisation."""

    def test_lowercase_is_checksummed(self):
        assert checksum(RECIPIENT.lower()) == RECIPIENT

    @pytest.mark.parametrize("address", ["0x1234", "", None])
    def test_invalid(self, address):
        with pytest.raises(InvalidAddressError):
            checksum(address)


class TestRpcErrors:
    """Tests for mapping client failures to ChainRpcError."""

    @pytest.mark.asyncio
    async def test_timeout_is_rpc_error(self, web3_gateway):
        web3_gateway._w3.eth.get_balance = _never
        with pytest.raises(ChainRpcError, match="timed out"):
            await web3_gateway.get_native_balance(RECIPIENT)

    @pytest.mark.asyncio
    async def test_call_timeout(self, web3_gateway):
        with pytest.raises(ChainRpcError, match="decimals timed out"):
            await web3_gateway._call("decimals", _never())

    @pytest.mark.asyncio
    async def test_client_error_is_rpc_error(self, web3_gateway):
        web3_gateway._w3.eth.get_balance = AsyncMock(side_effect=ConnectionError("refused"))
        with pytest.raises(ChainRpcError, match="get_balance failed: refused"):
            await web3_gateway.get_native_balance(RECIPIENT)

    @pytest.mark.asyncio
    async def test_broadcast_timeout(self, web3_gateway):
        web3_gateway._w3.eth.send_raw_transaction = _never
        with pytest.raises(ChainRpcError, match="send_raw_transaction timed out"):
            await web3_gateway.send_native(SIGNER_KEY, RECIPIENT, 1, 21_000, 1)


class TestReads:
    """Tests for balance and decimals reads."""

    @pytest.mark.asyncio
    async def test_native_balance(self, web3_gateway):
        web3_gateway._w3.eth.get_balance = AsyncMock(return_value=42)
        assert await web3_gateway.get_native_balance(RECIPIENT.lower()) == 42
        web3_gateway._w3.eth.get_balance.assert_awaited_once_with(RECIPIENT)

    @pytest.mark.asyncio
    async def test_token_balance(self, web3_gateway):
        web3_gateway._token.functions.balanceOf.return_value.call = AsyncMock(return_value=1_500_000)
        assert await web3_gateway.get_token_balance(RECIPIENT) == 1_500_000
        web3_gateway._token.functions.balanceOf.assert_called_once_with(RECIPIENT)

    @pytest.mark.asyncio
    async def test_decimals_cached(self, web3_gateway):
        decimals_call = AsyncMock(return_value=6)
        web3_gateway._token.functions.decimals.return_value.call = decimals_call
        assert await web3_gateway.get_token_decimals() == 6
        assert await web3_gateway.get_token_decimals() == 6
        assert decimals_call.await_count == 1

    @pytest.mark.asyncio
    async def test_no_token_contract(self):
        gateway = Web3Gateway(NO_TOKEN_CHAIN)
        with pytest.raises(TokenNotConfiguredError):
            await gateway.get_token_balance(RECIPIENT)
        with pytest.raises(TokenNotConfiguredError):
            await gateway.get_token_decimals()


class TestEstimates:
    """Tests for fee estimation."""

    @pytest.mark.asyncio
    async def test_native_estimate(self, web3_gateway):
        web3_gateway._w3.eth.gas_price = AsyncMock(return_value=10)()
        web3_gateway._w3.eth.estimate_gas = AsyncMock(return_value=21_000)
        cost = await web3_gateway.estimate_transfer_cost(KNOWN_ADDRESS, RECIPIENT, 5)
        assert cost == TransferCost(gas_limit=21_000, gas_price=10)
        web3_gateway._w3.eth.estimate_gas.assert_awaited_once_with(
            {"from": KNOWN_ADDRESS, "to": RECIPIENT, "value": 5}
        )

    @pytest.mark.asyncio
    async def test_token_estimate(self, web3_gateway):
        web3_gateway._w3.eth.gas_price = AsyncMock(return_value=3)()
        transfer = web3_gateway._token.functions.transfer
        transfer.return_value.estimate_gas = AsyncMock(return_value=65_000)
        cost = await web3_gateway.estimate_token_transfer_cost(KNOWN_ADDRESS, RECIPIENT, 1_500_000)
        assert cost.total_fee == 195_000
        transfer.assert_called_once_with(RECIPIENT, 1_500_000)


class TestBroadcast:
    """Tests for signing and sending."""

    @pytest.mark.asyncio
    async def test_send_native_uses_given_gas(self, web3_gateway):
        tx_hash = await web3_gateway.send_native(SIGNER_KEY, RECIPIENT.lower(), 5, 21_000, 10)
        assert tx_hash == "0x1234"
        tx, key = web3_gateway._w3.eth.account.sign_transaction.call_args.args
        assert key == SIGNER_KEY
        assert tx == {
            "to": RECIPIENT,
            "value": 5,
            "nonce": 7,
            "gas": 21_000,
            "gasPrice": 10,
            "chainId": TEST_CHAIN.chain_id,
        }
        web3_gateway._w3.eth.get_transaction_count.assert_awaited_once_with(KNOWN_ADDRESS, "pending")

    @pytest.mark.asyncio
    async def test_send_token_estimates_gas_when_missing(self, web3_gateway):
        web3_gateway.estimate_token_transfer_cost = AsyncMock(
            return_value=TransferCost(gas_limit=70_000, gas_price=5)
        )
        build = AsyncMock(return_value={"data": "0xa9059cbb"})
        web3_gateway._token.functions.transfer.return_value.build_transaction = build

        tx_hash = await web3_gateway.send_token(SIGNER_KEY, RECIPIENT, 1_500_000)

        assert tx_hash == "0x1234"
        web3_gateway.estimate_token_transfer_cost.assert_awaited_once_with(
            KNOWN_ADDRESS, RECIPIENT, 1_500_000
        )
        params = build.call_args.args[0]
        assert params["gas"] == 70_000
        assert params["gasPrice"] == 5
        assert params["nonce"] == 7
        assert params["from"] == KNOWN_ADDRESS
        signed_tx, _ = web3_gateway._w3.eth.account.sign_transaction.call_args.args
        assert signed_tx == {"data": "0xa9059cbb"}

    @pytest.mark.asyncio
    async def test_send_token_keeps_given_gas(self, web3_gateway):
        web3_gateway.estimate_token_transfer_cost = AsyncMock()
        build = AsyncMock(return_value={"data": "0x"})
        web3_gateway._token.functions.transfer.return_value.build_transaction = build

        await web3_gateway.send_token(SIGNER_KEY, RECIPIENT, 1, gas_limit=90_000, gas_price=2)

        web3_gateway.estimate_token_transfer_cost.assert_not_awaited()
        params = build.call_args.args[0]
        assert (params["gas"], params["gasPrice"]) == (90_000, 2)

    @pytest.mark.asyncio
    async def test_close_disconnects(self, web3_gateway):
        web3_gateway._w3.provider.disconnect = AsyncMock()
        await web3_gateway.close()
        web3_gateway._w3.provider.disconnect.assert_awaited_once()
