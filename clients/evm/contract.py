from typing import Any

from eth_typing import HexStr
from web3 import AsyncWeb3

from clients.evm.base import BaseWeb3Client, checksum, guard_transport


class TokenContract(BaseWeb3Client):
    """Read-only calls, gas estimation and call encoding against one contract address."""

    def __init__(
        self,
        address: str,
        abi: list[dict] | None = None,
        rpc_url: str | None = None,
        w3: AsyncWeb3 | None = None,
    ):
        self.address = checksum(address, "Invalid token address")
        super().__init__(rpc_url, w3)
        self.abi = abi or self.ERC20_ABI
        self._contract = None

    @property
    def contract(self):
        if self._contract is None:
            self._contract = self._get_erc20_contract(self.address, self.abi)
        return self._contract

    def _function(self, method: str, args: tuple):
        return getattr(self.contract.functions, method)(*args)

    async def call(self, method: str, *args: Any) -> Any:
        return await guard_transport(
            self._function(method, args).call(),
            f"eth_call {self.address}.{method}{args}",
            method=method
        )

    async def estimate_gas(self, method: str, *args: Any, sender: str) -> Any:
        return await guard_transport(
            self._function(method, args).estimate_gas({"from": checksum(sender)}),
            f"eth_estimateGas {self.address}.{method}{args} from {sender}"
        )

    def encode_call(self, method: str, *args: Any) -> HexStr:
        """ABI call data without the 0x prefix."""
        data = self._function(method, args)._encode_transaction_data()
        return HexStr(data[2:] if data.startswith("0x") else data)
