import logging

from clients.evm.base import BaseWeb3Client, checksum
from clients.evm.dto import TransactionDescriptor
from clients.evm.exceptions import InsufficientBalance, InvalidAmount, TransportError
from clients.evm.token import TokenService
from config import settings
from utils.fixed_point import AmountLike, amount_to_hex, from_hex, to_decimal, to_hex


module_logger = logging.getLogger(__name__)


class TransferBuilder:
    """Builds unsigned ERC-20 ``transfer`` transactions.

    Steps run strictly in order, each awaited before the next:
    balance check, decimals lookup, amount encoding, gas estimation,
    chain state lookup and call encoding. Only gas estimation recovers
    from failure (falls back to ``default_gas``); nothing is retried.
    """

    def __init__(
        self,
        token: TokenService,
        chain: BaseWeb3Client | None = None,
        default_gas: int | None = None,
    ):
        self.token = token
        self.chain = token.contract if chain is None else chain
        if default_gas is None:
            default_gas = settings.DEFAULT_GAS
        if not isinstance(default_gas, int) or isinstance(default_gas, bool) or default_gas <= 0:
            raise InvalidAmount(f"default gas must be a positive int, got {default_gas!r}")
        self.default_gas = default_gas

    async def estimate_transfer_gas(self, sender: str, recipient: str, amount: AmountLike) -> str:
        sender = checksum(sender)
        recipient = checksum(recipient)

        hex_amount = amount_to_hex(amount, await self.token.get_decimals())

        try:
            estimate = await self.token.contract.estimate_gas(
                "transfer", recipient, from_hex(hex_amount), sender=sender
            )
        except TransportError as e:
            module_logger.warning(
                f"Gas estimation failed for {sender} -> {recipient}: {e.message}; "
                f"using default gas {self.default_gas}"
            )
            return to_hex(self.default_gas)

        if not isinstance(estimate, int) or isinstance(estimate, bool) or estimate < 0:
            module_logger.warning(
                f"Gas estimation returned {estimate!r}; using default gas {self.default_gas}"
            )
            return to_hex(self.default_gas)

        return to_hex(estimate)

    async def build_transfer(
        self,
        sender: str,
        recipient: str,
        amount: AmountLike,
    ) -> TransactionDescriptor:
        sender = checksum(sender)
        recipient = checksum(recipient)
        amount = to_decimal(amount)

        balance = await self.token.get_balance(sender)
        if balance < amount:
            raise InsufficientBalance(balance, amount)

        decimals = await self.token.get_decimals()
        hex_amount = amount_to_hex(amount, decimals)

        gas = await self.estimate_transfer_gas(sender, recipient, amount)

        chain_id = await self.chain.get_chain_id()
        nonce = await self.chain.get_nonce(sender)
        gas_price = await self.chain.get_gas_price()
        data = self.token.contract.encode_call("transfer", recipient, from_hex(hex_amount))

        tx = TransactionDescriptor(
            sender=sender,
            to=self.token.address,
            chain_id=chain_id,
            nonce=nonce,
            gas_price=gas_price,
            gas=gas,
            data="0x" + data,
        )

        module_logger.info(
            f"Built transfer of {amount} ({hex_amount}) {sender} -> {recipient} "
            f"via {self.token.address}, gas={gas}, nonce={nonce}"
        )

        return tx
