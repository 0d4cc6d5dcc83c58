"""
Domain models for blocks and transactions.

These are decoded from JSON-RPC responses by the Ethereum client and
handed to the parser. Both are immutable once built.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class Transaction:
    """
    A transaction as seen by the parser.

    Attributes:
        block_hash: Hash of the block containing the transaction
        block_number: Number of the block containing the transaction
        hash: Transaction hash
        from_address: Sender address
        to_address: Receiver address ("" for contract creation)
        value: Transferred value in Wei
    """
    block_hash: str
    block_number: int
    hash: str
    from_address: str
    to_address: str
    value: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the transaction, keeping the Wei value as a decimal string."""
        return {
            "block_hash": self.block_hash,
            "block_number": self.block_number,
            "hash": self.hash,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "value": str(self.value),
        }


@dataclass(frozen=True)
class Block:
    """A block together with its full transaction list."""
    number: int
    hash: str
    parent_hash: str
    timestamp: datetime
    transactions: Tuple[Transaction, ...] = field(default_factory=tuple)
