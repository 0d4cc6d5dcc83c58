"""
BigQuery-backed transaction repository.

Stores one row per (address, transaction) pair so that a transaction is
discoverable from both its sender and its receiver, and keeps the last
processed block in the checkpoint table. Rows whose (address, hash) pair
already exists are skipped before insert, which keeps re-saves after a
retried batch idempotent.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Set, Tuple

from google.cloud import bigquery

from .config import CONFIG
from .exceptions import AddressNotFoundError
from .models import Transaction
from .repositories import TransactionsRepositoryBase
from .utils import BigQueryHelper, CheckpointManager, normalize_address, setup_logger


PIPELINE_NAME = "ethparser"
CHECKPOINT_KEY_LAST_BLOCK = "last_processed_block"


OBSERVED_TRANSACTIONS_SCHEMA = [
    bigquery.SchemaField("address", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("transaction_hash", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("block_number", "INTEGER", mode="REQUIRED"),
    bigquery.SchemaField("block_hash", "STRING", mode="NULLABLE"),
    bigquery.SchemaField("from_address", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("to_address", "STRING", mode="NULLABLE"),
    # Wei values overflow INT64, keep them as decimal strings
    bigquery.SchemaField("value_wei", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("ingested_at", "TIMESTAMP", mode="REQUIRED"),
]


class BigQueryTransactionsRepository(TransactionsRepositoryBase):
    """Durable transaction repository on Google BigQuery."""

    def __init__(
        self,
        bq_helper: BigQueryHelper = None,
        checkpoint_manager: CheckpointManager = None,
        dataset: str = None,
        table: str = None
    ):
        """
        Initialize the repository.

        Args:
            bq_helper: BigQuery helper
            checkpoint_manager: Checkpoint manager holding the progress marker
            dataset: Dataset ID (defaults to config)
            table: Transactions table ID (defaults to config)
        """
        self.logger = setup_logger(__name__)
        self.bq = bq_helper or BigQueryHelper()
        self.dataset = dataset or CONFIG.bigquery.dataset
        self.table = table or CONFIG.bigquery.transactions_table
        self.checkpoint = checkpoint_manager or CheckpointManager(self.bq, self.dataset)

    def _table_ref(self) -> str:
        return self.bq.table_ref(self.dataset, self.table)

    def _to_row(self, address: str, tx: Transaction, ingested_at: str) -> Dict:
        return {
            "address": address,
            "transaction_hash": normalize_address(tx.hash),
            "block_number": tx.block_number,
            "block_hash": tx.block_hash or None,
            "from_address": tx.from_address,
            "to_address": tx.to_address or None,
            "value_wei": str(tx.value),
            "ingested_at": ingested_at,
        }

    @staticmethod
    def _from_row(row: Dict) -> Transaction:
        return Transaction(
            block_hash=row.get("block_hash") or "",
            block_number=int(row["block_number"]),
            hash=row["transaction_hash"],
            from_address=row["from_address"],
            to_address=row.get("to_address") or "",
            value=int(row["value_wei"]),
        )

    def _get_existing_keys(self, keys: Set[Tuple[str, str]]) -> Set[Tuple[str, str]]:
        """
        Check which (address, hash) pairs are already stored.

        Args:
            keys: Candidate pairs

        Returns:
            set: Pairs already present in the table
        """
        if not keys or not self.bq.table_exists(self.dataset, self.table):
            return set()

        query = f"""
        SELECT DISTINCT address, transaction_hash
        FROM `{self._table_ref()}`
        WHERE transaction_hash IN UNNEST(@hashes)
        """
        params = [
            bigquery.ArrayQueryParameter(
                "hashes", "STRING", sorted({tx_hash for _, tx_hash in keys})
            ),
        ]

        results = self.bq.execute_query(query, params)
        return {(row["address"], row["transaction_hash"]) for row in results}

    def get_transactions(self, address: str) -> List[Transaction]:
        address = normalize_address(address)
        if not self.bq.table_exists(self.dataset, self.table):
            raise AddressNotFoundError(address)

        query = f"""
        SELECT transaction_hash, block_number, block_hash,
               from_address, to_address, value_wei
        FROM `{self._table_ref()}`
        WHERE address = @address
        """
        params = [bigquery.ScalarQueryParameter("address", "STRING", address)]

        results = self.bq.execute_query(query, params)
        if not results:
            raise AddressNotFoundError(address)

        # Streaming inserts may race, collapse duplicate rows by hash
        unique = {row["transaction_hash"]: self._from_row(row) for row in results}
        return list(unique.values())

    def save_transactions(self, transactions: Iterable[Transaction]) -> None:
        ingested_at = datetime.now(timezone.utc).isoformat()

        rows: Dict[Tuple[str, str], Dict] = {}
        for tx in transactions:
            for party in (tx.from_address, tx.to_address):
                address = normalize_address(party)
                if not address:
                    continue
                key = (address, normalize_address(tx.hash))
                rows[key] = self._to_row(address, tx, ingested_at)

        if not rows:
            return

        existing = self._get_existing_keys(set(rows))
        new_rows = [row for key, row in rows.items() if key not in existing]

        skipped = len(rows) - len(new_rows)
        if skipped:
            self.logger.debug(f"Skipped {skipped} already stored transaction rows")

        self.bq.insert_rows(
            dataset_id=self.dataset,
            table_id=self.table,
            rows=new_rows,
            schema=OBSERVED_TRANSACTIONS_SCHEMA
        )

    def get_last_processed_block(self) -> int:
        value = self.checkpoint.get_checkpoint(
            PIPELINE_NAME, CHECKPOINT_KEY_LAST_BLOCK, default="0"
        )
        return int(value)

    def save_last_processed_block(self, block_number: int) -> None:
        self.checkpoint.set_checkpoint(
            PIPELINE_NAME, CHECKPOINT_KEY_LAST_BLOCK, block_number
        )
