"""
Utility functions for the Ethereum transaction parser.

This module provides common utilities used across the parser,
including logging, retry logic, address normalization and BigQuery helpers.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List
from functools import wraps

from google.cloud import bigquery
from google.cloud.exceptions import NotFound

from .config import CONFIG
from .exceptions import StorageError


# ============================================================================
# LOGGING SETUP
# ============================================================================

def setup_logger(name: str, level: str = None) -> logging.Logger:
    """
    Set up a logger with consistent formatting.

    Args:
        name: Logger name (typically __name__)
        level: Log level (defaults to config setting)

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    level = level or CONFIG.log_level
    logger.setLevel(getattr(logging, level.upper()))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


# ============================================================================
# RETRY DECORATOR
# ============================================================================

def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: tuple = (Exception,)
) -> Callable:
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay between retries (seconds)
        max_delay: Maximum delay between retries (seconds)
        exponential_base: Base for exponential backoff
        exceptions: Tuple of exceptions to catch and retry

    Returns:
        Callable: Decorated function with retry logic
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger = setup_logger(func.__module__)
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt < max_retries:
                        delay = min(base_delay * (exponential_base ** attempt), max_delay)
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                            f"Retrying in {delay:.2f}s..."
                        )
                        time.sleep(delay)
                    else:
                        logger.error(f"All {max_retries + 1} attempts failed: {e}")

            raise last_exception
        return wrapper
    return decorator


# ============================================================================
# DATA NORMALIZATION
# ============================================================================

def normalize_address(address: str) -> str:
    """
    Normalize an Ethereum address (or hash) for lookups and storage keys.

    Args:
        address: Address string in any letter case

    Returns:
        str: Lowercase address, "" for empty input
    """
    if not address:
        return ""
    return address.lower().strip()


def unix_to_datetime(timestamp: int) -> datetime:
    """
    Convert Unix timestamp to datetime.

    Args:
        timestamp: Unix timestamp (seconds since epoch)

    Returns:
        datetime: UTC datetime object
    """
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


# ============================================================================
# BIGQUERY HELPERS
# ============================================================================

class BigQueryHelper:
    """Helper class for BigQuery operations."""

    def __init__(self, project_id: str = None, client: bigquery.Client = None):
        """
        Initialize BigQuery helper.

        Args:
            project_id: GCP project ID (defaults to config)
            client: Pre-built BigQuery client (built from project_id if omitted)
        """
        self.project_id = project_id or CONFIG.bigquery.project_id
        self.client = client or bigquery.Client(project=self.project_id)
        self.logger = setup_logger(__name__)

    def table_ref(self, dataset_id: str, table_id: str) -> str:
        """Fully qualified table name (project.dataset.table)."""
        return f"{self.project_id}.{dataset_id}.{table_id}"

    def ensure_dataset_exists(self, dataset_id: str) -> None:
        """
        Create dataset if it doesn't exist.

        Args:
            dataset_id: Dataset ID to create
        """
        dataset_ref = f"{self.project_id}.{dataset_id}"
        try:
            self.client.get_dataset(dataset_ref)
            self.logger.debug(f"Dataset {dataset_ref} already exists")
        except NotFound:
            dataset = bigquery.Dataset(dataset_ref)
            dataset.location = "US"
            self.client.create_dataset(dataset)
            self.logger.info(f"Created dataset {dataset_ref}")

    def table_exists(self, dataset_id: str, table_id: str) -> bool:
        """
        Check if a table exists.

        Args:
            dataset_id: Dataset ID
            table_id: Table ID

        Returns:
            bool: True if table exists
        """
        try:
            self.client.get_table(self.table_ref(dataset_id, table_id))
            return True
        except NotFound:
            return False

    def ensure_table_exists(
        self,
        dataset_id: str,
        table_id: str,
        schema: List[bigquery.SchemaField]
    ) -> None:
        """Create the table (and its dataset) when it is missing."""
        if self.table_exists(dataset_id, table_id):
            return

        self.ensure_dataset_exists(dataset_id)
        table = bigquery.Table(self.table_ref(dataset_id, table_id), schema=schema)
        self.client.create_table(table)
        self.logger.info(f"Created table {self.table_ref(dataset_id, table_id)}")

    def execute_query(self, query: str, params: List = None) -> List[Dict]:
        """
        Execute a BigQuery query and return results.

        Args:
            query: SQL query string
            params: Query parameters (optional)

        Returns:
            List[Dict]: Query results as list of dictionaries
        """
        job_config = bigquery.QueryJobConfig()
        if params:
            job_config.query_parameters = params

        query_job = self.client.query(query, job_config=job_config)
        results = query_job.result()

        return [dict(row) for row in results]

    def insert_rows(
        self,
        dataset_id: str,
        table_id: str,
        rows: List[Dict],
        schema: List[bigquery.SchemaField] = None
    ) -> int:
        """
        Insert rows into a BigQuery table.

        Args:
            dataset_id: Target dataset ID
            table_id: Target table ID
            rows: List of row dictionaries
            schema: Table schema (for table creation)

        Returns:
            int: Number of rows inserted

        Raises:
            StorageError: If BigQuery reports insert errors
        """
        if not rows:
            return 0

        if schema:
            self.ensure_table_exists(dataset_id, table_id, schema)

        table_ref = self.table_ref(dataset_id, table_id)
        errors = self.client.insert_rows_json(table_ref, rows)

        if errors:
            self.logger.error(f"Errors inserting rows: {errors}")
            raise StorageError(f"BigQuery insert errors: {errors}")

        self.logger.info(f"Inserted {len(rows)} rows into {table_ref}")
        return len(rows)


# ============================================================================
# CHECKPOINT MANAGEMENT
# ============================================================================

CHECKPOINT_SCHEMA = [
    bigquery.SchemaField("pipeline_name", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("checkpoint_key", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("checkpoint_value", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("updated_at", "TIMESTAMP", mode="REQUIRED"),
]


class CheckpointManager:
    """Manages processing checkpoints so ingestion can resume after a restart."""

    def __init__(self, bq_helper: BigQueryHelper = None, dataset: str = None):
        """
        Initialize checkpoint manager.

        Args:
            bq_helper: BigQuery helper instance
            dataset: Dataset holding the checkpoint table (defaults to config)
        """
        self.bq = bq_helper or BigQueryHelper()
        self.logger = setup_logger(__name__)
        self.dataset = dataset or CONFIG.bigquery.dataset
        self.table = CONFIG.bigquery.checkpoint_table

    def get_checkpoint(self, pipeline_name: str, key: str, default: Any = None) -> Any:
        """
        Get the most recent checkpoint value.

        Args:
            pipeline_name: Name of the pipeline
            key: Checkpoint key
            default: Default value if not found

        Returns:
            Any: Checkpoint value or default
        """
        self.bq.ensure_table_exists(self.dataset, self.table, CHECKPOINT_SCHEMA)

        query = f"""
        SELECT checkpoint_value
        FROM `{self.bq.table_ref(self.dataset, self.table)}`
        WHERE pipeline_name = @pipeline_name AND checkpoint_key = @key
        ORDER BY updated_at DESC
        LIMIT 1
        """

        params = [
            bigquery.ScalarQueryParameter("pipeline_name", "STRING", pipeline_name),
            bigquery.ScalarQueryParameter("key", "STRING", key),
        ]

        results = self.bq.execute_query(query, params)
        if results:
            return results[0]["checkpoint_value"]
        return default

    def set_checkpoint(self, pipeline_name: str, key: str, value: Any) -> None:
        """
        Set a checkpoint value.

        Args:
            pipeline_name: Name of the pipeline
            key: Checkpoint key
            value: Value to store
        """
        row = {
            "pipeline_name": pipeline_name,
            "checkpoint_key": key,
            "checkpoint_value": str(value),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

        self.bq.insert_rows(self.dataset, self.table, [row], schema=CHECKPOINT_SCHEMA)
        self.logger.debug(f"Set checkpoint {pipeline_name}.{key} = {value}")
