"""
Configuration for the Ethereum transaction parser.

This module contains all configuration settings for the parser,
including the RPC endpoint, batch processing knobs and the optional
BigQuery storage backend.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass
class RPCConfig:
    """Ethereum JSON-RPC node configuration."""
    endpoint: str = field(default_factory=lambda: os.getenv("ETH_RPC_ENDPOINT", ""))
    timeout: float = field(default_factory=lambda: _env_float("ETH_RPC_TIMEOUT", 30.0))
    max_retries: int = 2


@dataclass
class ParserConfig:
    """Block processing configuration."""
    # Upper bound for one whole batch, individual fetches share this deadline
    batch_process_timeout: float = field(
        default_factory=lambda: _env_float("PARSER_BATCH_TIMEOUT", 30.0)
    )
    # A new Ethereum block appears roughly every 12 seconds
    no_new_blocks_pause: float = field(
        default_factory=lambda: _env_float("PARSER_NO_NEW_BLOCKS_PAUSE", 10.0)
    )
    max_blocks_per_batch: int = field(
        default_factory=lambda: _env_int("PARSER_MAX_BLOCKS_PER_BATCH", 10)
    )

    def __post_init__(self):
        if self.max_blocks_per_batch < 1:
            raise ValueError("max_blocks_per_batch must be at least 1")
        if self.batch_process_timeout <= 0:
            raise ValueError("batch_process_timeout must be positive")
        if self.no_new_blocks_pause < 0:
            raise ValueError("no_new_blocks_pause must not be negative")


@dataclass
class BigQueryConfig:
    """BigQuery storage configuration."""
    project_id: str = field(default_factory=lambda: os.getenv("GOOGLE_CLOUD_PROJECT", ""))

    dataset: str = "ethparser"
    transactions_table: str = "observed_transactions"
    checkpoint_table: str = "ingestion_checkpoints"


@dataclass
class EthParserConfig:
    """Main parser configuration."""
    rpc: RPCConfig = field(default_factory=RPCConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    bigquery: BigQueryConfig = field(default_factory=BigQueryConfig)

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


def get_config() -> EthParserConfig:
    """
    Get the parser configuration.

    Returns:
        EthParserConfig: Configuration instance with all settings.
    """
    return EthParserConfig()


# Singleton config instance
CONFIG = get_config()
