import logging
from decimal import Decimal
from typing import Any

from eth_abi.abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from clients.evm.base import checksum, guard_transport
from clients.evm.contract import TokenContract
from clients.evm.dto import TokenMeta
from clients.evm.exceptions import MetadataUnavailable
from utils.fixed_point import format_base_units, from_base_units


module_logger = logging.getLogger(__name__)


def _last(result: Any) -> Any:
    if isinstance(result, (list, tuple)):
        return result[-1] if result else None
    return result


def _as_int(result: Any) -> int | None:
    value = _last(result)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _as_text(result: Any) -> str | None:
    value = _last(result)
    if isinstance(value, bytes):
        value = value.rstrip(b"\x00").decode("utf-8", errors="replace")
    if isinstance(value, str) and value:
        return value
    return None


class TokenService:
    """Typed read access to an ERC-20 token. Nothing is cached; every accessor re-queries."""

    DECIMALS_ERROR = 12000
    BALANCE_ERROR = 11000
    TOTAL_SUPPLY_ERROR = 14001

    def __init__(self, contract: TokenContract):
        self.contract = contract

    @property
    def address(self) -> str:
        return self.contract.address

    async def _read(self, method: str, *args: Any, label: str, code: int) -> Any:
        try:
            return await self.contract.call(method, *args)
        except MetadataUnavailable as e:
            raise MetadataUnavailable(label, e.result, code) from e

    async def get_decimals(self) -> int:
        result = await self._read("decimals", label="decimals", code=self.DECIMALS_ERROR)
        decimals = _as_int(result)

        if decimals is None or decimals < 0:
            raise MetadataUnavailable("decimals", result, self.DECIMALS_ERROR)
        return decimals

    async def get_balance(self, address: str) -> Decimal:
        wallet = checksum(address)
        result = await self._read("balanceOf", wallet, label="balance", code=self.BALANCE_ERROR)
        balance = _as_int(result)

        if balance is None or balance < 0:
            raise MetadataUnavailable("balance", result, self.BALANCE_ERROR)
        return from_base_units(balance, await self.get_decimals())

    async def get_name(self) -> str | None:
        return _as_text(await self.contract.call("name"))

    async def get_symbol(self) -> str | None:
        return _as_text(await self.contract.call("symbol"))

    async def get_total_supply(self) -> str:
        result = await self._read("totalSupply", label="total supply", code=self.TOTAL_SUPPLY_ERROR)
        supply = _as_int(result)

        if supply is None or supply < 0:
            raise MetadataUnavailable("total supply", result, self.TOTAL_SUPPLY_ERROR)
        return format_base_units(supply, await self.get_decimals())

    async def call_raw(self, method: str, *args: Any) -> Any:
        """Invoke any read-only method and return the node's decoded result untouched."""
        return await self.contract.call(method, *args)

    async def get_metadata(self) -> TokenMeta:
        """Name, symbol, decimals and raw supply in a single Multicall3 round trip."""
        token = self.contract.address
        functions = self.contract.contract.functions
        multicall = self.contract._get_multicall_contract()

        calls = [
            self.contract._create_call(
                token, functions.name()._encode_transaction_data()
            ),
            self.contract._create_call(
                token, functions.symbol()._encode_transaction_data()
            ),
            self.contract._create_call(
                token, functions.decimals()._encode_transaction_data()
            ),
            self.contract._create_call(
                token, functions.totalSupply()._encode_transaction_data()
            ),
        ]

        results = await guard_transport(
            multicall.functions.aggregate3(calls).call(),
            f"aggregate3 metadata {token}",
            method="metadata"
        )

        if len(results) != len(calls) or not all(success and data for success, data in results):
            raise MetadataUnavailable("metadata", results)

        _, name_bytes = results[0]
        _, symbol_bytes = results[1]
        _, decimals_bytes = results[2]
        _, supply_bytes = results[3]

        try:
            name = abi_decode(["string"], name_bytes)[0]
            symbol = abi_decode(["string"], symbol_bytes)[0]
            decimals = abi_decode(["uint8"], decimals_bytes)[0]
            supply = abi_decode(["uint256"], supply_bytes)[0]
        except (DecodingError, UnicodeDecodeError) as e:
            raise MetadataUnavailable("metadata", results) from e

        module_logger.debug(f"Metadata {token}: {symbol} decimals={decimals}")

        return TokenMeta(
            address=token,
            name=name or None,
            symbol=symbol or None,
            decimals=decimals,
            total_supply=supply
        )
