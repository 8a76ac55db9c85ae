"""
Command-line interface for offline-eth.

Commands marked (online) need a JSON-RPC endpoint; the others work on an
air-gapped machine.

    make-tx   Makes an unsigned transaction (online)
    sign-tx   Adds a signature to a transaction
    print-tx  Prints a transaction (optionally online)
    send-tx   Sends a signed transaction (online)
    balance   Prints balance and transaction count of an address (online)
    address   Prints the address of a private key
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError

from offline_eth import __version__
from offline_eth.config import Chain, OfflineEthConfig, set_config
from offline_eth.core.errors import ConfigurationError, OfflineEthError
from offline_eth.core.transaction import FeeMarketTransaction
from offline_eth.core.units import format_ether
from offline_eth.node.interface import (
    ChainClient,
    NodeConnectionError,
    TransactionSubmitError,
    TransactionTimeoutError,
)
from offline_eth.node.jsonrpc import JsonRpcAdapter
from offline_eth.tx.builder import TransactionBuilder
from offline_eth.tx.display import summarize
from offline_eth.tx.fees import value_intent_from_args
from offline_eth.tx.signer import (
    TransactionSigner,
    format_address,
    parse_address,
)

logger = structlog.get_logger(__name__)

CHAIN_CHOICES = [chain.value for chain in Chain]


def setup_logging(level: str = "WARNING", json_format: bool = False) -> None:
    """Configure structured logging on stderr, keeping stdout for results."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="offline-eth",
        description=(
            "Create, sign, and submit Ethereum transactions, isolating keys "
            "and signing on an offline computer."
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: OFFLINE_ETH_LOG_LEVEL or WARNING)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=None,
        help="Output logs in JSON format (default: OFFLINE_ETH_LOG_JSON)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # make-tx
    make_parser = subparsers.add_parser(
        "make-tx",
        help="Make an unsigned transaction (online)",
        description=(
            "Outputs an unsigned transaction as hex. The 'from' address is only "
            "used to look up the next nonce (and the balance for 'max'). With "
            "'max', the value is everything in 'from' less the most that might "
            "be spent on gas. The fee cap is 10% above a recent base fee "
            "sample; the priority fee is 1 gwei."
        ),
    )
    make_parser.add_argument(
        "--from",
        dest="from_address",
        required=True,
        help="Address to send from",
    )
    make_parser.add_argument(
        "--to",
        dest="to_address",
        required=True,
        help="Address to send to",
    )
    value_group = make_parser.add_mutually_exclusive_group()
    value_group.add_argument(
        "--value-eth",
        help="Amount to send in ether, or 'max'",
    )
    value_group.add_argument(
        "--value-wei",
        help="Amount to send in wei, or 'max'",
    )
    _add_chain_argument(make_parser)

    # sign-tx
    sign_parser = subparsers.add_parser(
        "sign-tx",
        help="Add a signature to a transaction",
        description="Outputs the signed transaction as hex.",
    )
    sign_parser.add_argument("--tx", required=True, help="Unsigned transaction hex")
    _add_key_arguments(sign_parser)

    # print-tx
    print_parser = subparsers.add_parser(
        "print-tx",
        help="Print a transaction (optionally online)",
        description=(
            "Outputs the transaction as JSON plus details to help confirm it is "
            "correct. The 'from' address is derived from the signature when "
            "the transaction is signed. With --online, balance and transaction "
            "count of the addresses are looked up."
        ),
    )
    print_parser.add_argument("--tx", required=True, help="Unsigned or signed transaction hex")
    print_parser.add_argument(
        "--online",
        action="store_true",
        help="Look up balances and transaction counts on the chain",
    )
    _add_chain_argument(print_parser)

    # send-tx
    send_parser = subparsers.add_parser(
        "send-tx",
        help="Send a signed transaction (online)",
        description="Broadcasts the transaction and waits until it is included.",
    )
    send_parser.add_argument("--tx", required=True, help="Signed transaction hex")
    _add_chain_argument(send_parser)

    # balance
    balance_parser = subparsers.add_parser(
        "balance",
        help="Print balance and transaction count of an address (online)",
    )
    balance_parser.add_argument("--address", required=True, help="Address to look up")
    _add_chain_argument(balance_parser)

    # address
    address_parser = subparsers.add_parser(
        "address",
        help="Print the address of a private key",
    )
    _add_key_arguments(address_parser)

    return parser


def _add_chain_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--chain",
        choices=CHAIN_CHOICES,
        default=None,
        help="Chain to use (default: mainnet)",
    )
    parser.add_argument(
        "--rpc-url",
        default=None,
        help="JSON-RPC endpoint (default: public endpoint for the chain)",
    )


def _add_key_arguments(parser: argparse.ArgumentParser) -> None:
    key_group = parser.add_mutually_exclusive_group()
    key_group.add_argument("--key", help="Private key as hex")
    key_group.add_argument("--key-file", help="File holding the private key as hex")


def build_config(args: argparse.Namespace) -> OfflineEthConfig:
    """Create configuration from the environment plus command-line overrides."""
    overrides: Dict[str, Any] = {}
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.log_json is not None:
        overrides["log_json"] = args.log_json
    if getattr(args, "chain", None):
        overrides["chain"] = Chain(args.chain)
    if getattr(args, "rpc_url", None):
        overrides["rpc_url"] = args.rpc_url
    return OfflineEthConfig(**overrides)


# ============================================================================
# Commands
# ============================================================================

async def make_transaction(args: argparse.Namespace, config: OfflineEthConfig) -> None:
    """Build an unsigned transfer and print its hex."""
    from_address = parse_address(args.from_address)
    to_address = parse_address(args.to_address)
    value_intent = value_intent_from_args(value_wei=args.value_wei, value_ether=args.value_eth)

    node = JsonRpcAdapter(config)
    await node.connect()
    try:
        builder = TransactionBuilder(node, config)
        tx = await builder.build_transfer(from_address, to_address, value_intent)
    finally:
        await node.disconnect()

    print(tx.to_hex())


def load_signer(args: argparse.Namespace, config: OfflineEthConfig) -> TransactionSigner:
    """Load the signing key from --key, --key-file or configuration."""
    signer = TransactionSigner(config)
    if args.key:
        signer.load_key_from_hex(args.key)
    elif args.key_file:
        signer.load_key_from_file(args.key_file)
    else:
        signer.load_from_config()
    return signer


def sign_transaction(args: argparse.Namespace, config: OfflineEthConfig) -> None:
    """Sign a transaction and print the signed hex."""
    tx = FeeMarketTransaction.from_hex(args.tx)
    signer = load_signer(args, config)
    print(signer.sign(tx).to_hex())


async def print_transaction(args: argparse.Namespace, config: OfflineEthConfig) -> None:
    """Print a transaction as JSON plus a human-readable summary."""
    tx = FeeMarketTransaction.from_hex(args.tx)
    summary = summarize(tx)

    print("TRANSACTION AS JSON")
    print(json.dumps(summary.fields, indent=2))
    print()
    print("INFO ABOUT TRANSACTION")
    for line in summary.lines():
        print(line)

    if not args.online:
        return

    node = JsonRpcAdapter(config)
    await node.connect()
    try:
        if summary.sender:
            print(f"  Balance in 'from': {await describe_account(node, summary.sender)}")
        print(f"  Balance in 'to': {await describe_account(node, summary.to)}")
    finally:
        await node.disconnect()


async def send_transaction(args: argparse.Namespace, config: OfflineEthConfig) -> None:
    """Broadcast a signed transaction and print its receipt."""
    tx = FeeMarketTransaction.from_hex(args.tx)
    if not tx.is_signed:
        raise ConfigurationError("Transaction is not signed; run sign-tx first")
    sender = summarize(tx).sender

    node = JsonRpcAdapter(config)
    await node.connect()
    try:
        logger.info("sending_transaction", sender=sender, tx_hash="0x" + tx.hash().hex())
        receipt = await node.send_signed_transaction(tx.to_hex())
    finally:
        await node.disconnect()

    print(json.dumps(receipt, indent=2))


async def show_balance(args: argparse.Namespace, config: OfflineEthConfig) -> None:
    """Print the balance and transaction count of an address."""
    address = format_address(parse_address(args.address))

    node = JsonRpcAdapter(config)
    await node.connect()
    try:
        print(await describe_account(node, address))
    finally:
        await node.disconnect()


async def describe_account(node: ChainClient, address: str) -> str:
    """Balance and transaction count of an address, as one line."""
    balance = await node.get_balance(address)
    count = await node.get_transaction_count(address, block="latest")
    return f"{balance} wei ({format_ether(balance)} eth) txs: {count}"


def show_address(args: argparse.Namespace, config: OfflineEthConfig) -> None:
    """Print the address of a private key."""
    print(load_signer(args, config).address_str)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = build_config(args)
        set_config(config)

        # Setup logging
        setup_logging(config.log_level, config.log_json)

        # Run appropriate command
        if args.command == "make-tx":
            asyncio.run(make_transaction(args, config))
        elif args.command == "sign-tx":
            sign_transaction(args, config)
        elif args.command == "print-tx":
            asyncio.run(print_transaction(args, config))
        elif args.command == "send-tx":
            asyncio.run(send_transaction(args, config))
        elif args.command == "balance":
            asyncio.run(show_balance(args, config))
        elif args.command == "address":
            show_address(args, config)
    except (
        OfflineEthError,
        NodeConnectionError,
        TransactionSubmitError,
        TransactionTimeoutError,
        ValidationError,
        FileNotFoundError,
    ) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
