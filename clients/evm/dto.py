from typing import Any
from dataclasses import dataclass


@dataclass(frozen=True)
class TokenMeta:
    address: str
    name: str | None
    symbol: str | None
    decimals: int
    total_supply: int


@dataclass(frozen=True)
class TransactionDescriptor:
    """Unsigned token transfer, ready for an external signer."""
    sender: str
    to: str
    chain_id: int
    nonce: int
    gas_price: int
    gas: str
    data: str
    value: str = "0x0"

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.sender,
            "to": self.to,
            "value": self.value,
            "chainId": self.chain_id,
            "nonce": self.nonce,
            "gasPrice": self.gas_price,
            "gas": self.gas,
            "data": self.data,
        }
