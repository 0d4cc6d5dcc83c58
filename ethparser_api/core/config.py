"""
Application configuration settings.

This module defines all configuration settings for the API application,
including the Ethereum node connection and parser tuning.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Name of the application
        app_version: Current version of the application
        debug: Enable debug mode
        eth_rpc_endpoint: Ethereum JSON-RPC endpoint polled by the parser
        run_parser_on_startup: Start the parser loop with the application
        parser_batch_timeout: Seconds allowed for one batch of blocks
        parser_no_new_blocks_pause: Seconds to wait when there is no new block
        parser_max_blocks_per_batch: Blocks fetched in parallel per batch
        parser_start_block: Block to resume after on a fresh store
        parser_storage: "memory" or "bigquery"
        subscribed_addresses: Addresses observed from startup
        cors_origins: List of allowed CORS origins
        api_prefix: API route prefix
    """

    # Application settings
    app_name: str = "Ethereum Transaction Parser API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Parser settings
    eth_rpc_endpoint: str = ""
    run_parser_on_startup: bool = True
    parser_batch_timeout: float = 30.0
    parser_no_new_blocks_pause: float = 10.0
    parser_max_blocks_per_batch: int = 10
    parser_start_block: Optional[int] = None
    parser_storage: str = "memory"
    subscribed_addresses: list[str] = []

    # API settings
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]
    api_prefix: str = "/api"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
