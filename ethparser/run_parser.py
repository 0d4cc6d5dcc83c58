"""
Parser command line entry point.

Polls an Ethereum node and keeps the transactions of the given addresses
until interrupted.

Usage:
    python -m ethparser.run_parser --rpc-endpoint https://cloudflare-eth.com \
        --addresses 0x... 0x... --start-block 19698124
    python -m ethparser.run_parser --addresses-file addresses.txt --storage bigquery
"""

import argparse
import signal
import threading
from typing import List

from .bigquery_repository import BigQueryTransactionsRepository
from .config import CONFIG, ParserConfig
from .parser import Parser
from .repositories import TransactionsRepository
from .utils import setup_logger


def load_addresses(addresses: List[str], addresses_file: str = None) -> List[str]:
    """
    Collect addresses from the command line and an optional file.

    Args:
        addresses: Addresses given with --addresses
        addresses_file: Path to a file with one address per line

    Returns:
        List[str]: Addresses in input order
    """
    collected = list(addresses or [])
    if addresses_file:
        with open(addresses_file, "r") as f:
            collected.extend(line.strip() for line in f if line.strip())
    return collected


def build_parser(args: argparse.Namespace) -> Parser:
    """Build a Parser from parsed command line arguments."""
    parser_config = ParserConfig(
        batch_process_timeout=args.batch_timeout,
        no_new_blocks_pause=args.no_new_blocks_pause,
        max_blocks_per_batch=args.max_blocks_per_batch,
    )

    if args.storage == "bigquery":
        transactions_repo = BigQueryTransactionsRepository()
        if args.start_block is not None:
            transactions_repo.save_last_processed_block(args.start_block)
    else:
        transactions_repo = TransactionsRepository(args.start_block or 0)

    return Parser(
        rpc_endpoint=args.rpc_endpoint,
        transactions_repository=transactions_repo,
        config=parser_config,
    )


def main(argv: List[str] = None):
    """Main entry point for CLI execution."""
    arg_parser = argparse.ArgumentParser(
        description="Parse Ethereum blocks for transactions of observed addresses"
    )
    arg_parser.add_argument(
        "--rpc-endpoint",
        type=str,
        default=CONFIG.rpc.endpoint,
        help="Ethereum JSON-RPC endpoint (defaults to ETH_RPC_ENDPOINT)"
    )
    arg_parser.add_argument(
        "--addresses",
        nargs="+",
        help="Ethereum addresses to observe"
    )
    arg_parser.add_argument(
        "--addresses-file",
        type=str,
        help="Path to file containing addresses (one per line)"
    )
    arg_parser.add_argument(
        "--start-block",
        type=int,
        default=None,
        help="Resume after this block instead of the stored progress"
    )
    arg_parser.add_argument(
        "--max-blocks-per-batch",
        type=int,
        default=CONFIG.parser.max_blocks_per_batch,
        help="Number of blocks fetched in parallel per batch"
    )
    arg_parser.add_argument(
        "--no-new-blocks-pause",
        type=float,
        default=CONFIG.parser.no_new_blocks_pause,
        help="Seconds to wait when the node has no new block"
    )
    arg_parser.add_argument(
        "--batch-timeout",
        type=float,
        default=CONFIG.parser.batch_process_timeout,
        help="Seconds allowed for one batch"
    )
    arg_parser.add_argument(
        "--storage",
        choices=["memory", "bigquery"],
        default="memory",
        help="Where transactions and progress are stored"
    )

    args = arg_parser.parse_args(argv)

    addresses = load_addresses(args.addresses, args.addresses_file)
    if not addresses:
        arg_parser.error("No addresses provided. Use --addresses or --addresses-file")

    logger = setup_logger(__name__)
    parser = build_parser(args)

    for address in addresses:
        parser.subscribe(address)

    stop_event = threading.Event()

    def _handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, stopping after the current batch")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    parser.run(stop_event)

    print(f"\nParser Summary:")
    print(f"  Last Processed Block: {parser.get_current_block()}")
    for address in addresses:
        print(f"  {address}: {len(parser.get_transactions(address))} transactions")


if __name__ == "__main__":
    main()
