import asyncio
import logging
from abc import ABC
from collections.abc import Awaitable
from typing import TypeVar

from aiohttp import ClientError, ClientTimeout
from eth_abi.exceptions import DecodingError
from web3 import AsyncWeb3
from web3.exceptions import BadFunctionCallOutput, Web3Exception
from web3.providers import AsyncHTTPProvider

from clients.evm.exceptions import InvalidAddress, MetadataUnavailable, TransportError
from config import settings


module_logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSPORT_ERRORS = (Web3Exception, ClientError, asyncio.TimeoutError)

# Raised when eth_call returns no data or data that does not match the ABI outputs.
DECODE_ERRORS = (BadFunctionCallOutput, DecodingError)


async def guard_transport(awaitable: Awaitable[T], description: str, method: str | None = None) -> T:
    """Await a node request, surfacing any transport failure as ``TransportError``.

    When ``method`` names a contract read, an empty or undecodable return value
    is reported as ``MetadataUnavailable`` for that method instead.
    """
    module_logger.debug(f"-> {description}")
    try:
        return await awaitable
    except DECODE_ERRORS as e:
        if method is None:
            raise TransportError.from_exception(e) from e
        module_logger.debug(f"<- {description} returned undecodable data: {e!r}")
        raise MetadataUnavailable(method, str(e)) from e
    except TRANSPORT_ERRORS as e:
        module_logger.debug(f"<- {description} failed: {e!r}")
        raise TransportError.from_exception(e) from e


def checksum(address: str, message: str = "Invalid address") -> str:
    if not isinstance(address, str) or not AsyncWeb3.is_address(address):
        raise InvalidAddress(address, message)
    return AsyncWeb3.to_checksum_address(address)


class BaseWeb3Client(ABC):
    MULTICALL3_ABI = [
        {
            "inputs": [
                {
                    "components": [
                        {
                            "internalType": "address",
                            "name": "target",
                            "type": "address",
                        },
                        {
                            "internalType": "bool",
                            "name": "allowFailure",
                            "type": "bool",
                        },
                        {"internalType": "bytes", "name": "callData", "type": "bytes"},
                    ],
                    "internalType": "struct Multicall3.Call3[]",
                    "name": "calls",
                    "type": "tuple[]",
                }
            ],
            "name": "aggregate3",
            "outputs": [
                {
                    "components": [
                        {"internalType": "bool", "name": "success", "type": "bool"},
                        {
                            "internalType": "bytes",
                            "name": "returnData",
                            "type": "bytes",
                        },
                    ],
                    "internalType": "struct Multicall3.Result[]",
                    "name": "returnData",
                    "type": "tuple[]",
                }
            ],
            "stateMutability": "payable",
            "type": "function",
        }
    ]

    ERC20_ABI = [
        {
            "inputs": [],
            "name": "name",
            "outputs": [{"name": "", "type": "string"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [],
            "name": "symbol",
            "outputs": [{"name": "", "type": "string"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [],
            "name": "decimals",
            "outputs": [{"name": "", "type": "uint8"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [],
            "name": "totalSupply",
            "outputs": [{"name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [{"name": "owner", "type": "address"}],
            "name": "balanceOf",
            "outputs": [{"name": "balance", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
            ],
            "name": "allowance",
            "outputs": [{"name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [
                {"name": "to", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "name": "transfer",
            "outputs": [{"name": "", "type": "bool"}],
            "stateMutability": "nonpayable",
            "type": "function",
        },
        {
            "inputs": [
                {"name": "spender", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "name": "approve",
            "outputs": [{"name": "", "type": "bool"}],
            "stateMutability": "nonpayable",
            "type": "function",
        },
    ]

    def __init__(self, rpc_url: str | None = None, w3: AsyncWeb3 | None = None):
        self.rpc_url = rpc_url or settings.RPC_URL
        self._w3 = w3
        # Only a provider created here is disconnected on exit.
        self._owns_w3 = w3 is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._owns_w3 and self._w3 is not None:
            await self._w3.provider.disconnect()

            self._w3 = None

    @property
    def w3(self) -> AsyncWeb3:
        if self._w3 is None:
            self._w3 = AsyncWeb3(
                AsyncHTTPProvider(
                    self.rpc_url,
                    request_kwargs={"timeout": ClientTimeout(total=settings.REQUEST_TIMEOUT)},
                )
            )
        return self._w3

    @staticmethod
    def _create_call(target: str, calldata: bytes, allow_failure: bool = True) -> tuple:
        return (target, allow_failure, calldata)

    def _get_multicall_contract(self):
        return self.w3.eth.contract(
            AsyncWeb3.to_checksum_address(settings.MULTICALL3_ADDRESS),
            abi=self.MULTICALL3_ABI
        )

    def _get_erc20_contract(self, token_address: str, abi: list[dict] | None = None):
        return self.w3.eth.contract(
            AsyncWeb3.to_checksum_address(token_address),
            abi=abi or self.ERC20_ABI
        )

    async def get_chain_id(self) -> int:
        return await guard_transport(self.w3.eth.chain_id, "eth_chainId")

    async def get_nonce(self, address: str) -> int:
        return await guard_transport(
            self.w3.eth.get_transaction_count(checksum(address)),
            f"eth_getTransactionCount({address})"
        )

    async def get_gas_price(self) -> int:
        return await guard_transport(self.w3.eth.gas_price, "eth_gasPrice")
