#!/usr/bin/env python3
"""
iscn-tx: estimate, sign and broadcast ISCN record transactions.

Configuration comes from the environment:
    ISCN_RPC_URL      node REST endpoint (required)
    ISCN_CHAIN_ID     chain id (optional, queried from the node otherwise)
    COSMOS_MNEMONIC   signing mnemonic (or COSMOS_MNEMONIC_FILE), needed by
                      submit and signer-data only
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from iscn_sdk.iscn.fees import estimate_gas
from iscn_sdk.iscn.messages import build_iscn_message
from iscn_sdk.iscn.payload import format_payload
from iscn_sdk.logging_config import setup_sdk_logging
from iscn_sdk.rpc_client.tx_manager import IscnTxManager
from iscn_sdk.utils.format import format_like_from_nanolike

logger = logging.getLogger("iscn_sdk.tools")

# Bech32 address of realistic length, only used for size estimation
PLACEHOLDER_ADDRESS = "like1" + "q" * 38


def load_payload(path: str) -> dict[str, Any]:
    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(Path(path)) as f:
            data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("payload must be a JSON object")
    return data


def cmd_estimate_gas(args) -> None:
    payload = load_payload(args.payload)
    iscn_id = payload.pop("iscnId", None)
    message = build_iscn_message(PLACEHOLDER_ADDRESS, format_payload(payload), iscn_id=iscn_id)
    estimate = estimate_gas(message)
    print(f"Gas: {estimate.gas}")
    print(f"Fee: {estimate.amount[0].amount} {estimate.amount[0].denom}")


async def cmd_estimate_fee(args, manager: IscnTxManager) -> None:
    fee = await manager.estimate_fee(load_payload(args.payload), version=args.version)
    print(f"Registration fee: {fee} {manager.network.fee_denom} ({format_like_from_nanolike(fee)})")


async def cmd_submit(args, manager: IscnTxManager) -> None:
    result = await manager.submit(load_payload(args.payload))
    print(f"Tx hash: {result.tx_hash}")
    print(f"ISCN id: {result.iscn_id or '-'}")


async def cmd_signer_data(args, manager: IscnTxManager) -> None:
    data = await manager.get_signer_data()
    print(f"Account number: {data.account_number}")
    print(f"Sequence: {data.sequence}")
    print(f"Chain id: {data.chain_id}")


async def _run_with_manager(handler, args) -> None:
    manager = IscnTxManager.from_env()
    try:
        await handler(args, manager)
    finally:
        await manager.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iscn-tx",
        description="Estimate, sign and broadcast ISCN record transactions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    gas_parser = subparsers.add_parser("estimate-gas", help="Estimate gas for a payload (offline)")
    gas_parser.add_argument("payload", help="Path to a JSON payload, or - for stdin")

    fee_parser = subparsers.add_parser("estimate-fee", help="Quote the ISCN registration fee")
    fee_parser.add_argument("payload", help="Path to a JSON payload, or - for stdin")
    fee_parser.add_argument("--version", type=int, default=1, help="Record version (default: 1)")

    submit_parser = subparsers.add_parser("submit", help="Sign and broadcast a create/update transaction")
    submit_parser.add_argument("payload", help="Path to a JSON payload, or - for stdin")

    subparsers.add_parser("signer-data", help="Show account number, sequence and chain id")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_sdk_logging(debug=args.debug)

    try:
        if args.command == "estimate-gas":
            cmd_estimate_gas(args)
        elif args.command == "estimate-fee":
            asyncio.run(_run_with_manager(cmd_estimate_fee, args))
        elif args.command == "submit":
            asyncio.run(_run_with_manager(cmd_submit, args))
        elif args.command == "signer-data":
            asyncio.run(_run_with_manager(cmd_signer_data, args))
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"\n❌ Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
