"""
HTTP API over the Ethereum transaction parser.

Exposes address subscription, transaction lookup and parsing progress.
"""
