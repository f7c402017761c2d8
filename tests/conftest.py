from typing import Any

import pytest

from clients.evm.exceptions import TransportError
from clients.evm.token import TokenService
from clients.evm.transfer import TransferBuilder


TOKEN = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
SENDER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
RECIPIENT = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


# -----------------------------
# Test doubles
# -----------------------------


class FakeTokenContract:
    """In-memory stand-in for TokenContract that records every outbound call.

    - results: method name -> value (or exception instance to raise).
    - gas: estimate_gas result (or exception instance to raise).
    """

    def __init__(self, results: dict[str, Any] | None = None, gas: Any = 51234) -> None:
        self.address = TOKEN
        self.results = dict(results or {})
        self.gas = gas
        self.log: list[tuple] = []

    async def call(self, method: str, *args: Any) -> Any:
        self.log.append(("call", method, args))
        result = self.results[method]
        if isinstance(result, Exception):
            raise result
        return result

    async def estimate_gas(self, method: str, *args: Any, sender: str) -> Any:
        self.log.append(("estimate_gas", method, args, sender))
        if isinstance(self.gas, Exception):
            raise self.gas
        return self.gas

    def encode_call(self, method: str, *args: Any) -> str:
        self.log.append(("encode_call", method, args))
        to, amount = args
        return "a9059cbb" + to[2:].lower().rjust(64, "0") + format(amount, "064x")

    async def get_chain_id(self) -> int:
        self.log.append(("chain_id",))
        return 31337

    async def get_nonce(self, address: str) -> int:
        self.log.append(("nonce", address))
        return 7

    async def get_gas_price(self) -> int:
        self.log.append(("gas_price",))
        return 1_000_000_000

    def methods(self) -> list[str]:
        return [entry[1] if entry[0] in ("call", "estimate_gas", "encode_call") else entry[0] for entry in self.log]


# -----------------------------
# Pytest fixtures
# -----------------------------


@pytest.fixture()
def erc20_results() -> dict[str, Any]:
    return {
        "name": "Test Token",
        "symbol": "TST",
        "decimals": 18,
        "totalSupply": 123_456_789 * 10 ** 15,
        "balanceOf": 5 * 10 ** 18,
    }


@pytest.fixture()
def fake_contract(erc20_results) -> FakeTokenContract:
    return FakeTokenContract(erc20_results)


@pytest.fixture()
def token_service(fake_contract) -> TokenService:
    return TokenService(fake_contract)


@pytest.fixture()
def transfer_builder(token_service) -> TransferBuilder:
    return TransferBuilder(token_service, default_gas=50000)


@pytest.fixture()
def node_down() -> TransportError:
    return TransportError("connection refused", code=-32000)
