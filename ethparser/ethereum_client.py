"""
Ethereum client built on top of the JSON-RPC transport.

This module exposes the two calls the parser needs, the most recent
block number and a block with its full transactions, and decodes the
hex-encoded wire payloads into domain models.
"""

from typing import Any, Dict, Optional

from .exceptions import BlockNotFoundError, InvalidQuantityError, RPCError
from .hexutils import decode_to_big_int, decode_to_uint64, encode_uint64
from .jsonrpc_client import JsonRpcClient
from .models import Block, Transaction
from .utils import unix_to_datetime


def _decode_field(payload: Dict[str, Any], name: str, decoder) -> int:
    try:
        return decoder(payload.get(name))
    except InvalidQuantityError as e:
        raise InvalidQuantityError(f"could not decode {name}: {e}") from e


def decode_transaction(payload: Dict[str, Any]) -> Transaction:
    """
    Decode a transaction object returned by eth_getBlockByNumber.

    Args:
        payload: Raw transaction object

    Returns:
        Transaction: Decoded transaction

    Raises:
        InvalidQuantityError: If a numeric field is malformed
    """
    return Transaction(
        block_hash=payload.get("blockHash") or "",
        block_number=_decode_field(payload, "blockNumber", decode_to_uint64),
        hash=payload.get("hash") or "",
        from_address=payload.get("from") or "",
        # "to" is null for contract creation
        to_address=payload.get("to") or "",
        value=_decode_field(payload, "value", decode_to_big_int),
    )


def decode_block(payload: Dict[str, Any]) -> Block:
    """
    Decode a block object requested with full transaction objects.

    The timestamp is a Unix time in seconds and is converted to UTC.

    Raises:
        InvalidQuantityError: If a numeric field is malformed
    """
    number = _decode_field(payload, "number", decode_to_uint64)
    timestamp = _decode_field(payload, "timestamp", decode_to_uint64)

    transactions = []
    for raw_tx in payload.get("transactions") or []:
        if not isinstance(raw_tx, dict):
            # Only hashes were returned, the block was requested without details
            raise RPCError(f"block {number} returned transaction hashes only")
        transactions.append(decode_transaction(raw_tx))

    return Block(
        number=number,
        hash=payload.get("hash") or "",
        parent_hash=payload.get("parentHash") or "",
        timestamp=unix_to_datetime(timestamp),
        transactions=tuple(transactions),
    )


class EthereumClient:
    """
    Ledger client used by the parser.

    Any object exposing get_most_recent_block_number() and
    get_block_by_number() with the same signatures can replace it.
    """

    def __init__(self, endpoint: str = None, rpc_client: JsonRpcClient = None):
        """
        Initialize the Ethereum client.

        Args:
            endpoint: Node URL used to build a JsonRpcClient
            rpc_client: Pre-built RPC client, anything with a call() method
        """
        self.rpc = rpc_client or JsonRpcClient(endpoint)

    def get_most_recent_block_number(self, timeout: Optional[float] = None) -> int:
        """
        Get the number of the most recent block.

        Args:
            timeout: Request timeout in seconds

        Returns:
            int: Latest block number
        """
        result = self.rpc.call("eth_blockNumber", None, timeout=timeout)
        try:
            return decode_to_uint64(result)
        except InvalidQuantityError as e:
            raise InvalidQuantityError(f"could not decode block number: {e}") from e

    def get_block_by_number(self, block_number: int, timeout: Optional[float] = None) -> Block:
        """
        Get a block by number, including full transaction objects.

        Args:
            block_number: Block number
            timeout: Request timeout in seconds

        Returns:
            Block: Decoded block

        Raises:
            BlockNotFoundError: If the node has no such block
        """
        result = self.rpc.call(
            "eth_getBlockByNumber",
            [encode_uint64(block_number), True],
            timeout=timeout
        )
        if result is None:
            raise BlockNotFoundError(block_number)
        if not isinstance(result, dict):
            raise RPCError(f"unexpected block payload for {block_number}: {result!r}")

        return decode_block(result)
