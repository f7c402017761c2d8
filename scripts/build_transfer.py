#!/usr/bin/env python
import argparse
import asyncio
import json
import logging
import sys

from clients.evm.contract import TokenContract
from clients.evm.exceptions import TokenError
from clients.evm.token import TokenService
from clients.evm.transfer import TransferBuilder
from config import settings


async def build(token_address: str, sender: str, recipient: str, amount: str, rpc_url: str | None) -> dict:
    async with TokenContract(token_address, rpc_url=rpc_url) as contract:
        builder = TransferBuilder(TokenService(contract))
        tx = await builder.build_transfer(sender, recipient, amount)
        return tx.to_dict()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build an unsigned ERC20 transfer transaction.")
    parser.add_argument("--token", required=True, help="Token contract address (0x...)")
    parser.add_argument("--from", dest="sender", required=True, help="Sender address (0x...)")
    parser.add_argument("--to", dest="recipient", required=True, help="Recipient address (0x...)")
    parser.add_argument("--amount", required=True, help="Token amount in human units, e.g. 1.5")
    parser.add_argument("--rpc-url", default=None, help=f"Node URL (default {settings.RPC_URL})")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        tx = asyncio.run(build(args.token, args.sender, args.recipient, args.amount, args.rpc_url))
    except TokenError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(tx, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
