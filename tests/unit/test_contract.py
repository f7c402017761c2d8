import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import ClientConnectionError
from eth_abi.exceptions import InsufficientDataBytes
from web3 import AsyncWeb3
from web3.exceptions import BadFunctionCallOutput, Web3Exception
from web3.providers import AsyncHTTPProvider

from clients.evm.base import BaseWeb3Client, guard_transport
from clients.evm.contract import TokenContract
from clients.evm.exceptions import InvalidAddress, MetadataUnavailable, TransportError
from tests.conftest import RECIPIENT, SENDER, TOKEN


async def _value(v):
    return v


def _offline_w3() -> AsyncWeb3:
    return AsyncWeb3(AsyncHTTPProvider("http://127.0.0.1:8545"))


def _mocked_contract() -> tuple[TokenContract, MagicMock]:
    contract = TokenContract(TOKEN, w3=_offline_w3())
    web3_contract = MagicMock()
    contract._contract = web3_contract
    return contract, web3_contract


# -----------------------------
# Construction
# -----------------------------


@pytest.mark.parametrize("bad", ["", "0x123", "not an address", None, 42])
def test_invalid_token_address(bad):
    with pytest.raises(InvalidAddress) as info:
        TokenContract(bad, w3=_offline_w3())
    assert info.value.code == 23000
    assert info.value.message.startswith("Invalid token address")


def test_address_is_checksummed():
    contract = TokenContract(TOKEN.lower(), w3=_offline_w3())
    assert contract.address == TOKEN


def test_custom_abi_is_kept():
    abi = [{"inputs": [], "name": "owner", "outputs": [{"name": "", "type": "address"}],
            "stateMutability": "view", "type": "function"}]
    contract = TokenContract(TOKEN, abi=abi, w3=_offline_w3())
    assert contract.abi is abi
    assert contract.contract.address == TOKEN


def test_default_abi_is_erc20():
    contract = TokenContract(TOKEN, w3=_offline_w3())
    names = {entry["name"] for entry in contract.abi}
    assert {"name", "symbol", "decimals", "totalSupply", "balanceOf", "transfer"} <= names


# -----------------------------
# Calls
# -----------------------------


async def test_call_passes_method_and_args():
    contract, web3_contract = _mocked_contract()
    web3_contract.functions.balanceOf.return_value.call = AsyncMock(return_value=42)

    assert await contract.call("balanceOf", SENDER) == 42
    web3_contract.functions.balanceOf.assert_called_once_with(SENDER)


@pytest.mark.parametrize(
    "error",
    [
        Web3Exception("execution reverted"),
        ClientConnectionError("connection refused"),
        asyncio.TimeoutError(),
    ],
)
async def test_call_wraps_transport_errors(error):
    contract, web3_contract = _mocked_contract()
    web3_contract.functions.decimals.return_value.call = AsyncMock(side_effect=error)

    with pytest.raises(TransportError) as info:
        await contract.call("decimals")

    assert info.value.__cause__ is error
    assert info.value.message == (str(error) or error.__class__.__name__)


async def test_programming_errors_are_not_wrapped():
    contract, web3_contract = _mocked_contract()
    web3_contract.functions.decimals.return_value.call = AsyncMock(side_effect=KeyError("boom"))

    with pytest.raises(KeyError):
        await contract.call("decimals")


@pytest.mark.parametrize(
    "error",
    [
        BadFunctionCallOutput(
            "Could not decode contract function call to decimals() with return data: b'', "
            "output_types: ['uint8']"
        ),
        InsufficientDataBytes("Tried to read 32 bytes, only got 0 bytes."),
    ],
)
async def test_empty_call_result_is_metadata_unavailable(error):
    contract, web3_contract = _mocked_contract()
    web3_contract.functions.decimals.return_value.call = AsyncMock(side_effect=error)

    with pytest.raises(MetadataUnavailable) as info:
        await contract.call("decimals")

    assert info.value.method == "decimals"
    assert info.value.__cause__ is error


async def test_undecodable_result_without_method_is_transport_error():
    error = BadFunctionCallOutput("Could not decode")

    async def failing():
        raise error

    with pytest.raises(TransportError) as info:
        await guard_transport(failing(), "eth_call")
    assert info.value.__cause__ is error


async def test_estimate_gas_sends_checksummed_sender():
    contract, web3_contract = _mocked_contract()
    estimate = AsyncMock(return_value=51000)
    web3_contract.functions.transfer.return_value.estimate_gas = estimate

    assert await contract.estimate_gas("transfer", RECIPIENT, 10, sender=SENDER.lower()) == 51000
    web3_contract.functions.transfer.assert_called_once_with(RECIPIENT, 10)
    estimate.assert_awaited_once_with({"from": SENDER})


def test_encode_call_has_no_prefix():
    contract = TokenContract(TOKEN, w3=_offline_w3())

    data = contract.encode_call("transfer", RECIPIENT, 1_500_000_000_000_000_000)

    assert data == (
        "a9059cbb"
        + RECIPIENT[2:].lower().rjust(64, "0")
        + "14d1120d7b160000".rjust(64, "0")
    )


# -----------------------------
# Chain state
# -----------------------------


async def test_chain_state_reads():
    w3 = MagicMock()
    w3.eth.chain_id = _value(56)
    w3.eth.gas_price = _value(3_000_000_000)
    w3.eth.get_transaction_count = AsyncMock(return_value=12)
    client = TokenContract(TOKEN, w3=w3)

    assert await client.get_chain_id() == 56
    assert await client.get_nonce(SENDER.lower()) == 12
    assert await client.get_gas_price() == 3_000_000_000
    w3.eth.get_transaction_count.assert_awaited_once_with(SENDER)


async def test_nonce_invalid_address():
    client = TokenContract(TOKEN, w3=MagicMock())
    with pytest.raises(InvalidAddress):
        await client.get_nonce("0xdead")


async def test_context_manager_disconnects_own_provider():
    async with TokenContract(TOKEN, rpc_url="http://127.0.0.1:8545") as client:
        assert isinstance(client, BaseWeb3Client)
        client.w3.provider.disconnect = AsyncMock()
        disconnect = client.w3.provider.disconnect

    disconnect.assert_awaited_once()
    assert client._w3 is None


async def test_context_manager_leaves_injected_provider_open():
    w3 = MagicMock()
    w3.provider.disconnect = AsyncMock()

    async with TokenContract(TOKEN, w3=w3) as client:
        pass

    w3.provider.disconnect.assert_not_awaited()
    assert client.w3 is w3


async def test_guard_transport_passes_results_through():
    assert await guard_transport(_value([1, 2]), "noop") == [1, 2]


# -----------------------------
# Transport error details
# -----------------------------


def test_transport_error_from_rpc_payload():
    error = ValueError({"code": -32000, "message": "header not found"})
    wrapped = TransportError.from_exception(error)
    assert wrapped.message == "header not found"
    assert wrapped.code == -32000


def test_transport_error_from_rpc_response_attribute():
    class RPCError(Exception):
        rpc_response = {"jsonrpc": "2.0", "id": 1, "error": {"code": 3, "message": "execution reverted"}}

    wrapped = TransportError.from_exception(RPCError("rpc"))
    assert wrapped.message == "execution reverted"
    assert wrapped.code == 3


def test_transport_error_without_details():
    wrapped = TransportError.from_exception(asyncio.TimeoutError())
    assert wrapped.message == "TimeoutError"
    assert wrapped.code is None
