"""
Repositories for observed addresses and parsed transactions.

The parser only depends on the two abstract contracts below. The
in-memory implementations are the defaults; in production the address
set would live in a fast shared cache and transactions in a durable
store (see bigquery_repository). Any implementation must keep saves
idempotent, since failed batches are reprocessed in full.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Set

from .exceptions import AddressNotFoundError
from .models import Transaction
from .utils import normalize_address


class ObserverRepository(ABC):
    """Set of addresses whose transactions should be kept."""

    @abstractmethod
    def observe_address(self, address: str) -> None:
        """Add an address to the observed set. Observing twice is a no-op."""

    @abstractmethod
    def is_address_observed(self, address: str) -> bool:
        """Check whether an address is observed, ignoring letter case."""


class TransactionsRepositoryBase(ABC):
    """Transactions per address plus the last processed block marker."""

    @abstractmethod
    def get_transactions(self, address: str) -> List[Transaction]:
        """
        Get all transactions involving an address.

        Raises:
            AddressNotFoundError: If nothing was ever saved for the address
        """

    @abstractmethod
    def save_transactions(self, transactions: Iterable[Transaction]) -> None:
        """Upsert transactions under both their sender and receiver."""

    @abstractmethod
    def get_last_processed_block(self) -> int:
        """Get the last processed block number, 0 if never set."""

    @abstractmethod
    def save_last_processed_block(self, block_number: int) -> None:
        """Overwrite the last processed block number."""


class AddressesRepository(ObserverRepository):
    """In-memory, thread-safe set of observed addresses."""

    def __init__(self):
        self._observed: Set[str] = set()
        self._lock = threading.Lock()

    def observe_address(self, address: str) -> None:
        with self._lock:
            self._observed.add(normalize_address(address))

    def is_address_observed(self, address: str) -> bool:
        with self._lock:
            return normalize_address(address) in self._observed


class TransactionsRepository(TransactionsRepositoryBase):
    """
    In-memory, thread-safe transaction store.

    Transactions are kept as address -> tx hash -> transaction. Keying by
    hash instead of appending to a list is what turns a re-save of the
    same transaction (after a retried batch) into a no-op.
    """

    def __init__(self, last_processed_block: int = 0):
        """
        Initialize the repository.

        Args:
            last_processed_block: Block to resume after, 0 starts from genesis
        """
        self._last_processed_block = last_processed_block
        self._transactions_per_address: Dict[str, Dict[str, Transaction]] = {}
        self._lock = threading.Lock()

    def get_transactions(self, address: str) -> List[Transaction]:
        with self._lock:
            transactions = self._transactions_per_address.get(normalize_address(address))
            if transactions is None:
                raise AddressNotFoundError(address)
            return list(transactions.values())

    def save_transactions(self, transactions: Iterable[Transaction]) -> None:
        with self._lock:
            for tx in transactions:
                tx_hash = normalize_address(tx.hash)
                for party in (tx.from_address, tx.to_address):
                    # Contract creations have no receiver
                    if not party:
                        continue
                    bucket = self._transactions_per_address.setdefault(
                        normalize_address(party), {}
                    )
                    bucket[tx_hash] = tx

    def get_last_processed_block(self) -> int:
        with self._lock:
            return self._last_processed_block

    def save_last_processed_block(self, block_number: int) -> None:
        with self._lock:
            self._last_processed_block = block_number
