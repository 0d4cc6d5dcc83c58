"""
Ethereum Transaction Parser.

This package polls an Ethereum JSON-RPC node for new blocks, keeps the
transactions that involve subscribed addresses and tracks how far the
chain has been processed so that ingestion can resume after a restart.
"""

__version__ = "1.0.0"
